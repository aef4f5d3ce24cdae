"""Tests for platform detection and ID extraction."""

import pytest

from odesli.domain.value_objects.platforms import (
    COUNTRY_CODES,
    COUNTRY_NAMES,
    SUPPORTED_PLATFORMS,
    detect_platform,
    extract_id,
    is_valid_country,
    parse_entity_id,
    strip_entity_prefix,
)


class TestDetectPlatform:
    """Test detect_platform."""

    @pytest.mark.parametrize(
        ("url", "platform"),
        [
            ("https://open.spotify.com/track/4Km5HrUvYTaSUfiSGPJeQR", "spotify"),
            ("spotify:track:4Km5HrUvYTaSUfiSGPJeQR", "spotify"),
            ("https://music.apple.com/us/album/x/1493120897?i=1493120900", "appleMusic"),
            ("https://itunes.apple.com/us/album/id1493120897", "itunes"),
            ("https://music.youtube.com/watch?v=dQw4w9WgXcQ", "youtubeMusic"),
            ("https://www.youtube.com/watch?v=dQw4w9WgXcQ", "youtube"),
            ("https://youtu.be/dQw4w9WgXcQ", "youtube"),
            ("https://www.deezer.com/track/3135556", "deezer"),
            ("https://tidal.com/browse/track/77640617", "tidal"),
            ("https://music.amazon.com/albums/B07XYZ1234", "amazonMusic"),
            ("https://www.amazon.com/dp/B07XYZ1234", "amazonStore"),
            ("https://soundcloud.com/artist/song", "soundcloud"),
        ],
    )
    def test_known_platforms(self, url: str, platform: str) -> None:
        """Test share links map to their platform."""
        assert detect_platform(url) == platform
        assert platform in SUPPORTED_PLATFORMS

    @pytest.mark.parametrize("url", ["https://example.com/track/1", "", None, "spotify"])
    def test_unknown_input(self, url) -> None:
        """Test unknown or empty input yields None."""
        assert detect_platform(url) is None


class TestExtractId:
    """Test extract_id."""

    @pytest.mark.parametrize(
        ("url", "entity_id"),
        [
            ("https://open.spotify.com/track/4Km5HrUvYTaSUfiSGPJeQR", "4Km5HrUvYTaSUfiSGPJeQR"),
            ("https://open.spotify.com/intl-de/album/1DFixLWuPkv3KT3TnV35m3", "1DFixLWuPkv3KT3TnV35m3"),
            ("spotify:track:4Km5HrUvYTaSUfiSGPJeQR", "4Km5HrUvYTaSUfiSGPJeQR"),
            ("https://music.apple.com/us/album/x/1493120897?i=1493120900", "1493120900"),
            ("https://music.apple.com/us/album/x/1493120897", "1493120897"),
            ("https://www.youtube.com/watch?v=dQw4w9WgXcQ", "dQw4w9WgXcQ"),
            ("https://youtu.be/dQw4w9WgXcQ", "dQw4w9WgXcQ"),
            ("https://www.deezer.com/track/3135556", "3135556"),
            ("https://tidal.com/browse/track/77640617", "77640617"),
        ],
    )
    def test_ids(self, url: str, entity_id: str) -> None:
        """Test the platform ID is pulled out of the URL."""
        assert extract_id(url) == entity_id

    def test_known_platform_without_id(self) -> None:
        """Test a platform URL that carries no ID yields None."""
        assert extract_id("https://www.deezer.com/") is None

    def test_unknown_platform(self) -> None:
        """Test unknown URLs yield None."""
        assert extract_id("https://example.com/track/1") is None
        assert extract_id(None) is None


class TestEntityIds:
    """Test composite entity ID helpers."""

    def test_parse_entity_id(self) -> None:
        """Test the prefix is split and lowercased."""
        assert parse_entity_id("SPOTIFY_SONG::4Km5HrUvYTaSUfiSGPJeQR") == (
            "spotify",
            "song",
            "4Km5HrUvYTaSUfiSGPJeQR",
        )
        assert parse_entity_id("ITUNES_ALBUM::1493120897") == ("itunes", "album", "1493120897")

    @pytest.mark.parametrize("value", ["4Km5HrUvYTaSUfiSGPJeQR", "SPOTIFY_TRACK::x", "SPOTIFY_SONG::"])
    def test_parse_entity_id_rejects_bad_format(self, value: str) -> None:
        """Test strings outside PLATFORM_TYPE::ID yield None."""
        assert parse_entity_id(value) is None

    def test_strip_entity_prefix(self) -> None:
        """Test only the part after the last separator is kept."""
        assert strip_entity_prefix("SPOTIFY_SONG::abc") == "abc"
        assert strip_entity_prefix("abc") == "abc"


class TestCountries:
    """Test the country table."""

    def test_is_valid_country(self) -> None:
        """Test codes are exact upper-case ISO alpha-2."""
        assert is_valid_country("GB")
        assert is_valid_country("US")
        assert not is_valid_country("gb")
        assert not is_valid_country("XX")
        assert not is_valid_country(None)  # type: ignore[arg-type]

    def test_table_is_alpha_2(self) -> None:
        """Test every entry is two upper-case letters."""
        assert all(len(code) == 2 and code.isupper() for code in COUNTRY_CODES)

    def test_every_code_has_a_name(self) -> None:
        """Test the name table and the code set agree."""
        assert set(COUNTRY_NAMES) == COUNTRY_CODES
        assert COUNTRY_NAMES["US"] == "United States"
        assert all(name.strip() for name in COUNTRY_NAMES.values())
