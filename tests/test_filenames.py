import pytest

from wasabi.utils.filenames import InvalidFileNameError, effect_name, ensure_mp3_name, sanitize_name


class TestSanitizeName:
    """Tests for user supplied file name validation."""

    def test_plain_name_unchanged(self):
        assert sanitize_name("a.mp3") == "a.mp3"

    def test_surrounding_whitespace_trimmed(self):
        assert sanitize_name("  intro sound.mp3 ") == "intro sound.mp3"

    @pytest.mark.parametrize(
        "name",
        [
            "",
            "   ",
            ".",
            None,
        ],
    )
    def test_empty_names_rejected(self, name):
        with pytest.raises(InvalidFileNameError):
            sanitize_name(name)

    @pytest.mark.parametrize(
        "name",
        [
            "../../etc/passwd",
            "..",
            "..mp3",
            "a..mp3",
            "clip.mp3..",
            "/etc/passwd",
            "sub/clip.mp3",
            "clip.mp3/",
            "\\windows\\clip.mp3",
            "clip\\.mp3",
            "clip\x00.mp3",
        ],
    )
    def test_traversal_and_separators_rejected(self, name):
        """Test that traversal segments and separators are rejected at any position."""
        with pytest.raises(InvalidFileNameError):
            sanitize_name(name)


class TestNameHelpers:
    """Tests for stored name derivation."""

    @pytest.mark.parametrize(
        "name,expected",
        [
            ("clip.wav", "clip.mp3"),
            ("clip.mp3", "clip.mp3"),
            ("clip", "clip.mp3"),
            ("My.Intro.M4A", "My.Intro.mp3"),
        ],
    )
    def test_ensure_mp3_name(self, name, expected):
        assert ensure_mp3_name(name) == expected

    def test_effect_name_strips_extension(self):
        assert effect_name("airhorn.mp3") == "airhorn"

    def test_effect_name_without_extension(self):
        assert effect_name("airhorn") == "airhorn"
