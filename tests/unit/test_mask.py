"""Unit tests for include/exclude masks."""

import pytest

from ftpsync.sync.mask import MaskingContext, MaskPattern


class TestMaskPattern:
    """Tests for single ant-style patterns."""

    @pytest.mark.parametrize("pattern,path,expected", [
        ("*.txt", "a.txt", True),
        ("*.txt", "dir/a.txt", False),
        ("**/*.txt", "a.txt", True),
        ("**/*.txt", "dir/sub/a.txt", True),
        ("docs/**", "docs", True),
        ("docs/**", "docs/a/b.md", True),
        ("docs/**", "src/docs/a.md", False),
        ("a?c", "abc", True),
        ("a?c", "abbc", False),
        ("**", "anything/at/all", True),
        ("src/**/test_*.py", "src/pkg/tests/test_x.py", True),
        ("src/**/test_*.py", "src/test_x.py", True),
    ])
    def test_matches(self, pattern, path, expected):
        assert MaskPattern(pattern).matches(path) is expected

    def test_case_insensitive(self):
        assert MaskPattern("*.TXT").matches("README.txt")
        assert MaskPattern("docs/*.md").matches("DOCS/Guide.MD")

    def test_star_does_not_cross_segments(self):
        assert MaskPattern("a*").matches("ab/c") is False


class TestMaskingContext:
    """Tests for include/exclude rule sets."""

    def test_default_includes_everything(self):
        mask = MaskingContext()
        assert mask.is_match("a/b/c.bin") is True

    def test_empty_includes_mean_everything(self):
        mask = MaskingContext(includes=["", "  "])
        assert mask.is_match("x.txt") is True

    def test_include_filters(self):
        mask = MaskingContext(includes=["**/*.md"])

        assert mask.is_match("docs/guide.md") is True
        assert mask.is_match("readme.txt") is False

    def test_exclude_wins_over_include(self):
        mask = MaskingContext(includes=["**"], excludes=["**/*.o"])

        assert mask.is_match("build/out.o") is False
        assert mask.is_match("build/out.c") is True

    def test_excluded_directory_covers_descendants(self):
        mask = MaskingContext(excludes=["build"])

        assert mask.is_excluded("build") is True
        assert mask.is_excluded("build/deep/file.txt") is True
        assert mask.is_match("build/deep/file.txt") is False
        assert mask.is_match("src/build.txt") is True

    def test_multiple_includes(self):
        mask = MaskingContext(includes=["*.txt", "docs/**"])

        assert mask.is_match("a.txt") is True
        assert mask.is_match("docs/img/a.png") is True
        assert mask.is_match("img/a.png") is False

    def test_backslash_paths(self):
        mask = MaskingContext(includes=["docs/*.md"])
        assert mask.is_match("docs\\guide.md") is True

    def test_repr(self):
        mask = MaskingContext(includes=["*.txt"], excludes=["tmp"])
        assert repr(mask) == "MaskingContext(includes=['*.txt'], excludes=['tmp'])"
