"""Tests for backend key normalization."""

from pathlib import Path

from tiercache.key_builder import (
    DefaultKeyBuilder,
    derive_file_key,
    get_root,
    normalize_key,
    strip_root,
)


class TestNormalizeKey:
    def test_separators_become_colons(self) -> None:
        assert normalize_key("a/b\\c", "NS") == "NS:a:b:c"

    def test_is_deterministic(self) -> None:
        assert normalize_key("x/y.z", "NS") == normalize_key("x/y.z", "NS")

    def test_file_path_key(self) -> None:
        key = normalize_key("/backend/components/app/tool/tool.template.htmx", "UI")
        assert key == "UI:backend:components:app:tool:tool.template.htmx"

    def test_plain_name(self) -> None:
        assert normalize_key("myKey", "MicroCODE") == "MicroCODE:myKey"

    def test_dot_runs_collapse(self) -> None:
        assert normalize_key("a..b", "NS") == "NS:a.b"
        assert normalize_key("a.....b", "NS") == "NS:a.b"

    def test_parent_references_leave_no_double_dots(self) -> None:
        key = normalize_key("../secret/../x", "NS")
        assert key == "NS:secret:.:x"
        assert ".." not in key

    def test_edges_are_stripped(self) -> None:
        assert normalize_key("....a....", "NS") == "NS:a"
        assert normalize_key(":::a:::", "NS") == "NS:a"
        assert normalize_key("./a/", "NS") == "NS:a"

    def test_empty_key_is_namespace_prefix(self) -> None:
        assert normalize_key("", "NS") == "NS:"


class TestFileKeys:
    def test_root_is_stripped(self) -> None:
        key = derive_file_key("/srv/app/backend/x.html", "NS", root="/srv/app")
        assert key == "NS:backend:x.html"

    def test_windows_root_is_stripped(self) -> None:
        key = derive_file_key("D:\\Src\\backend\\tool.htmx", "UI", root="D:\\Src")
        assert key == "UI:backend:tool.htmx"

    def test_path_outside_root_is_kept(self) -> None:
        key = derive_file_key("/other/srv/app/x", "NS", root="/srv/app")
        assert key == "NS:other:srv:app:x"

    def test_root_must_end_at_a_directory_boundary(self) -> None:
        assert strip_root("/srv/application/x", "/srv/app") == "/srv/application/x"
        assert strip_root("/srv/app", "/srv/app") == ""
        assert strip_root("/srv/app/x", "/srv/app/") == "x"

    def test_root_is_removed_once(self) -> None:
        assert strip_root("/r/r/a", "/r") == "/r/a"

    def test_accepts_path_objects(self) -> None:
        assert strip_root(Path("/r/a/b"), "/r") == str(Path("/a/b"))

    def test_default_root_is_cached(self) -> None:
        assert isinstance(get_root(), str)
        assert get_root() is get_root()


class TestDefaultKeyBuilder:
    def test_build(self) -> None:
        assert DefaultKeyBuilder(root="/r").build("a/b", "NS") == "NS:a:b"

    def test_relative_path(self) -> None:
        builder = DefaultKeyBuilder(root="/r")
        assert builder.relative_path("/r/a/b") == "/a/b"
        assert builder.root == "/r"

    def test_root_defaults_to_entry_point(self) -> None:
        assert DefaultKeyBuilder().root == get_root()
