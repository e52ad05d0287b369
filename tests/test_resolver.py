"""
Tests for target resolution.
"""

import os.path

import pytest

from parallelizer import JobResolutionError, resolve_target


class TestResolveTarget:

    def test_resolves_module_function(self):
        assert resolve_target("os.path:join") is os.path.join

    def test_resolves_dotted_attribute_path(self):
        assert resolve_target("collections:OrderedDict.fromkeys") is not None

    def test_surrounding_whitespace_ignored(self):
        assert resolve_target(" os.path : join ") is os.path.join

    @pytest.mark.parametrize("target", ["os.path.join", ":join", "os.path:", ""])
    def test_malformed_target(self, target):
        with pytest.raises(JobResolutionError) as exc_info:
            resolve_target(target)

        assert "module:attribute" in str(exc_info.value)

    def test_missing_module(self):
        with pytest.raises(JobResolutionError) as exc_info:
            resolve_target("no_such_module_xyz:run")

        assert "cannot import" in exc_info.value.reason

    def test_missing_attribute(self):
        with pytest.raises(JobResolutionError) as exc_info:
            resolve_target("os.path:no_such_function")

        assert "no_such_function" in exc_info.value.reason

    def test_non_callable_attribute(self):
        with pytest.raises(JobResolutionError) as exc_info:
            resolve_target("os:sep")

        assert "not callable" in exc_info.value.reason
