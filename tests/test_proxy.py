"""Tests for veneer.proxy."""

from __future__ import annotations

import copy
import pickle

import cloudpickle
import pytest

from veneer import MappingOverlayProxy, OverlayProxy, SequenceOverlayProxy, wrap


class Config:
    def __init__(self) -> None:
        self.name = "base"
        self.sub = {"k": 1}


class TestProxyTypes:
    """Test which proxy class a target gets."""

    def test_proxy_classes(self):
        """Each container kind gets its own proxy class."""
        assert type(wrap({})) is MappingOverlayProxy
        assert type(wrap([])) is SequenceOverlayProxy
        assert type(wrap(Config())) is OverlayProxy

    def test_isinstance_forwards(self):
        """Proxies pass isinstance checks for the target's class."""
        assert isinstance(wrap({}), dict)
        assert isinstance(wrap([]), list)
        assert isinstance(wrap(Config()), Config)

    def test_nested_proxies(self):
        """Nested containers come back as proxies of the right class."""
        proxy = wrap(Config())
        assert type(proxy.sub) is MappingOverlayProxy
        assert proxy.sub.__veneer__.parent is proxy.__veneer__
        assert proxy.sub.__veneer__.root is proxy.__veneer__


class TestMappingProxy:
    """Test the dict-like API."""

    def test_read_helpers(self):
        """get, keys, values and items see the overlay."""
        proxy = wrap({"a": 1, "b": 2})
        proxy["c"] = 3
        del proxy["a"]
        assert proxy.get("a") is None
        assert proxy.get("a", 0) == 0
        assert proxy.get("b") == 2
        assert proxy.keys() == ["b", "c"]
        assert proxy.values() == [2, 3]
        assert proxy.items() == [("b", 2), ("c", 3)]

    def test_missing_key_raises(self):
        """Reading an absent key raises KeyError."""
        proxy = wrap({"a": 1})
        with pytest.raises(KeyError):
            _ = proxy["x"]

    def test_pop(self):
        """pop records a removal and returns a plain value."""
        proxy = wrap({"a": 1, "b": {"x": 1}})
        assert proxy.pop("a") == 1
        assert "a" not in proxy
        assert proxy.pop("zz", 5) == 5
        with pytest.raises(KeyError):
            proxy.pop("zz")
        popped = proxy.pop("b")
        assert popped == {"x": 1}
        assert type(popped) is dict
        assert proxy.__veneer__.get_changes() == {"remove": {"a": True, "b": True}}

    def test_pop_default_for_removed_key(self):
        """A removed key pops as absent and returns the default."""
        proxy = wrap({"a": 1})
        del proxy["a"]
        assert proxy.pop("a", None) is None
        assert proxy.pop("a", 7) == 7
        with pytest.raises(KeyError):
            proxy.pop("a")

    def test_setdefault(self):
        """setdefault only writes absent keys."""
        proxy = wrap({"a": 1})
        assert proxy.setdefault("a", 5) == 1
        assert proxy.setdefault("b", 5) == 5
        assert proxy.__veneer__.get_changes() == {"assign": {"b": 5}}

    def test_update(self):
        """update writes every pair."""
        proxy = wrap({"a": 1})
        proxy.update({"b": 2}, c=3)
        proxy.update([("d", 4)])
        assert proxy.__veneer__.get_changes() == {"assign": {"b": 2, "c": 3, "d": 4}}

    def test_clear(self):
        """clear removes every key."""
        target = {"a": 1, "b": 2}
        proxy = wrap(target)
        proxy.clear()
        assert len(proxy) == 0
        assert not proxy
        assert proxy.__veneer__.get_changes() == {"remove": {"a": True, "b": True}}
        assert target == {"a": 1, "b": 2}

    def test_copy_method(self):
        """copy returns the plain effective value."""
        proxy = wrap({"a": {"b": 1}})
        proxy["a"]["b"] = 2
        result = proxy.copy()
        assert result == {"a": {"b": 2}}
        assert not isinstance(result, OverlayProxy)

    def test_target_methods_not_forwarded(self):
        """Methods of the target that are not overlaid are unavailable."""
        proxy = wrap({"a": 1})
        with pytest.raises(AttributeError):
            proxy.popitem()
        with pytest.raises(AttributeError):
            proxy.name = "x"

    def test_reserved_key(self):
        """__veneer__ is always the overlay, never a key of the target."""
        proxy = wrap({"__veneer__": 1})
        assert proxy.__veneer__.get_target() == {"__veneer__": 1}
        assert proxy["__veneer__"] == 1


class TestSequenceProxy:
    """Test the list-like API."""

    def test_indexing(self):
        """Positive, negative and slice indexing."""
        proxy = wrap([1, 2, 3, 4])
        assert proxy[0] == 1
        assert proxy[-1] == 4
        assert proxy[1:3] == [2, 3]
        with pytest.raises(IndexError):
            _ = proxy[10]

    def test_negative_index_skips_holes(self):
        """Negative indices count the live items only."""
        proxy = wrap([1, 2, 3])
        del proxy[2]
        assert proxy[-1] == 2

    def test_search(self):
        """in, index and count look at the effective items."""
        proxy = wrap([1, 2, 2])
        proxy[0] = 5
        assert 5 in proxy
        assert 1 not in proxy
        assert proxy.index(2) == 1
        assert proxy.count(2) == 2
        with pytest.raises(ValueError):
            proxy.index(9)

    def test_index_with_hole(self):
        """index returns a key that reads back the same item after a removal."""
        proxy = wrap([10, 20, 30])
        del proxy[0]
        assert proxy.index(20) == 1
        assert proxy[proxy.index(20)] == 20
        assert proxy[proxy.index(30)] == 30

    def test_extend(self):
        """extend appends each value."""
        proxy = wrap([1])
        proxy.extend([2, 3])
        assert list(proxy) == [1, 2, 3]
        assert proxy.__veneer__.get_changes() == {"assign": {"1": 2, "2": 3}}

    def test_non_integer_index(self):
        """Only integer indices are accepted."""
        proxy = wrap([1])
        with pytest.raises(TypeError):
            proxy["a"] = 1

    def test_target_methods_not_forwarded(self):
        """Mutating list methods are not reachable through the proxy."""
        proxy = wrap([3, 1, 2])
        with pytest.raises(AttributeError):
            proxy.sort()


class TestObjectProxy:
    """Test attribute access on object targets."""

    def test_attributes(self):
        """Attribute writes and deletes are recorded."""
        target = Config()
        proxy = wrap(target)
        proxy.name = "changed"
        proxy.sub["k"] = 2
        assert proxy.name == "changed"
        assert target.name == "base"
        assert proxy.__veneer__.get_changes() == {"assign": {"name": "changed", "sub.k": 2}}

    def test_item_access_rejected(self):
        """Object proxies do not support item assignment."""
        proxy = wrap(Config())
        with pytest.raises(TypeError):
            proxy["name"] = "x"
        with pytest.raises(TypeError):
            del proxy["name"]

    def test_dir(self):
        """dir lists assigned attributes."""
        proxy = wrap(Config())
        proxy.extra = 1
        names = dir(proxy)
        assert "extra" in names
        assert "name" in names


class TestProxyValueSemantics:
    """Test that proxies compare, print, copy and pickle as their effective value."""

    def test_eq(self):
        """Equality is structural on the effective value."""
        proxy = wrap({"a": 1})
        proxy["a"] = 2
        assert proxy == {"a": 2}
        assert proxy != {"a": 1}

    def test_hash_is_identity(self):
        """Proxies are hashable even when the target is not."""
        proxy = wrap({"a": 1})
        assert proxy in {proxy}
        assert hash(proxy) == id(proxy)

    def test_repr(self):
        """repr shows the effective value."""
        proxy = wrap({"a": 1})
        proxy["b"] = 2
        assert repr(proxy) == repr({"a": 1, "b": 2})

    def test_copy(self):
        """copy and deepcopy produce plain effective values."""
        proxy = wrap({"a": {"b": 1}})
        proxy["a"]["b"] = 2
        shallow = copy.copy(proxy)
        deep = copy.deepcopy(proxy)
        assert shallow == {"a": {"b": 2}}
        assert deep == {"a": {"b": 2}}
        assert type(shallow) is dict
        assert type(deep) is dict

    def test_pickle(self):
        """Pickling stores the effective value, not the overlay."""
        proxy = wrap({"a": [1, 2]})
        proxy["a"][0] = 10
        restored = pickle.loads(pickle.dumps(proxy))
        assert restored == {"a": [10, 2]}
        assert type(restored) is dict

    def test_cloudpickle(self):
        """cloudpickle round trips the effective value."""
        proxy = wrap(Config())
        proxy.name = "pickled"
        restored = pickle.loads(cloudpickle.dumps(proxy))
        assert type(restored) is Config
        assert restored.name == "pickled"
        assert restored.sub == {"k": 1}


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
