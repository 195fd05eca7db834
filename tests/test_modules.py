import pytest
import numpy as np
from GNNpy.core import Module
from GNNpy.nn import GCNConv, Linear


class TestModuleEdgeCases:
    """Tests for edge cases in Module functionality"""

    def test_premature_parameter_registration(self):
        """Test parameter registration before initialization"""
        with pytest.raises(TypeError):
            class BadModule(Module):
                def __init__(self):
                    self.param = np.ones(1)  # Before super().__init__()
            BadModule()

    def test_invalid_parameter(self):
        module = Module()
        with pytest.raises(TypeError):
            module.register_parameter("w", [1.0, 2.0])

    def test_invalid_module_addition(self):
        """Test adding invalid modules"""
        module = Module()

        # Test adding None module
        module.add_module('none_module', None)
        assert module._modules['none_module'] is None

        # Test adding invalid type
        with pytest.raises(TypeError):
            module.add_module('invalid', "not a module")

        # Test adding before initialization
        with pytest.raises(TypeError):
            class BadModule(Module):
                def __init__(self):
                    self.add_module('test', Module())  # Before super().__init__()
            BadModule()

    def test_attribute_access(self):
        """Test attribute access edge cases"""
        module = Module()
        with pytest.raises(AttributeError):
            _ = module.nonexistent_attr

        class BadModule(Module):
            def __init__(self):
                _ = self.training  # Before super().__init__()
                super().__init__()

        with pytest.raises(AttributeError):
            BadModule()

    def test_module_buffer_operations(self):
        """Test buffer operations in detail"""
        class TestModule(Module):
            def __init__(self):
                super().__init__()
                self.register_buffer('degree', np.zeros(3))
                self.register_buffer('cache', None)

        module = TestModule()
        assert 'degree' in module._buffers
        assert module._buffers['cache'] is None
        assert module.degree.shape == (3,)
        # Buffers are not parameters
        assert list(module.parameters()) == []

        module.register_buffer('degree', np.ones(3))
        assert np.array_equal(module._buffers['degree'], [1.0, 1.0, 1.0])

        with pytest.raises(TypeError):
            module.register_buffer('bad', 3)

    def test_forward_not_implemented(self):
        with pytest.raises(NotImplementedError):
            Module()(np.ones(2))


class TestModuleTree:
    """Tests for parameter registration across nested modules"""

    def test_named_parameters(self):
        class Model(Module):
            def __init__(self):
                super().__init__()
                self.conv = GCNConv(3, 4)
                self.readout = Linear(4, 1)
                self.scale = np.ones(1)

        params = dict(Model().named_parameters())
        assert set(params) == {
            'scale', 'conv.weight', 'conv.bias', 'readout.weight', 'readout.bias'
        }

    def test_plain_attributes_are_not_parameters(self):
        conv = GCNConv(3, 4)
        assert conv.in_channels == 3
        assert 'in_channels' not in conv._parameters
        assert len(list(conv.parameters())) == 2

    def test_nested_module_training(self):
        """Test training mode propagation in nested modules"""
        class NestedModule(Module):
            def __init__(self):
                super().__init__()
                self.sub1 = Linear(2, 2)
                self.sub2 = GCNConv(2, 2)

        module = NestedModule()
        module.eval()
        assert not module.training
        assert not module.sub1.training
        assert not module.sub2.training

        module.train()
        assert module.sub2.training

    def test_repr(self):
        class Model(Module):
            def __init__(self):
                super().__init__()
                self.conv = GCNConv(3, 4)

        assert repr(Model()) == "Model(\n  (conv): GCNConv(3 => 4)\n)"
