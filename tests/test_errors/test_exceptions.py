"""Tests for custom exception hierarchy."""

from photocache.errors.exceptions import DecodeError, DiskCacheError, PhotoCacheError


class TestExceptionHierarchy:
    def test_all_inherit_from_base(self):
        assert issubclass(DecodeError, PhotoCacheError)
        assert issubclass(DiskCacheError, PhotoCacheError)

    def test_all_inherit_from_exception(self):
        assert issubclass(PhotoCacheError, Exception)


class TestDecodeError:
    def test_attributes(self):
        original = OSError("truncated")
        err = DecodeError("bad bytes", reason="undecodable", original=original)
        assert err.reason == "undecodable"
        assert err.original is original
        assert err.message == "bad bytes"
        assert "bad bytes" in str(err)

    def test_defaults(self):
        err = DecodeError("test")
        assert err.reason == "undecodable"
        assert err.original is None


class TestDiskCacheError:
    def test_attributes(self):
        original = PermissionError("denied")
        err = DiskCacheError("cannot write", key="k1", operation="write", original=original)
        assert err.key == "k1"
        assert err.operation == "write"
        assert err.original is original

    def test_defaults(self):
        err = DiskCacheError("test")
        assert err.key is None
        assert err.operation == "write"
