import pytest

from sitesnap.utils import (
    canonicalize_url,
    is_blacklisted,
    is_in_scope,
    sanitize_name,
)


class TestSanitizeName:
    def test_replaces_reserved_characters(self):
        assert sanitize_name('a/b\\c:d*e?f"g<h>i|j') == "a_b_c_d_e_f_g_h_i_j"

    def test_empty_uses_fallback(self):
        assert sanitize_name("") == "Untitled"
        assert sanitize_name("", fallback="index") == "index"

    def test_dot_segments_are_neutralised(self):
        assert sanitize_name("..") == "__"
        assert sanitize_name(".") == "_"

    def test_keeps_spaces_and_unicode(self):
        assert sanitize_name("Über uns") == "Über uns"


class TestCanonicalizeUrl:
    def test_strips_fragment_and_lowercases_host(self):
        assert (
            canonicalize_url("HTTPS://Example.ORG/About#team")
            == "https://example.org/About"
        )

    def test_empty_path_becomes_root(self):
        assert canonicalize_url("https://example.org") == "https://example.org/"

    def test_default_port_dropped_custom_port_kept(self):
        assert canonicalize_url("https://example.org:443/a") == "https://example.org/a"
        assert canonicalize_url("http://example.org:8080/a") == "http://example.org:8080/a"

    def test_query_and_trailing_slash_preserved(self):
        assert canonicalize_url("https://example.org/a/?b=2&a=1") == (
            "https://example.org/a/?b=2&a=1"
        )

    @pytest.mark.parametrize("url", ["", "/relative", "mailto:someone@example.org"])
    def test_unusable_urls(self, url):
        assert canonicalize_url(url) is None


class TestScope:
    def test_root_origin(self):
        assert is_in_scope("https://example.org/about", "https://example.org/")

    def test_other_host_rejected(self):
        assert not is_in_scope("https://example.org.evil.com/", "https://example.org/")
        assert not is_in_scope("http://example.org/", "https://example.org/")

    def test_origin_with_path_prefix(self):
        origin = "https://example.org/docs"
        assert is_in_scope("https://example.org/docs/intro", origin)
        assert is_in_scope("https://example.org/docs", origin)
        assert not is_in_scope("https://example.org/docsearch", origin)
        assert not is_in_scope("https://example.org/blog", origin)


class TestBlacklist:
    def test_segment_match_is_case_insensitive(self):
        assert is_blacklisted("https://example.org/Events/2024", ["events", "calendar"])

    def test_partial_segment_does_not_match(self):
        assert not is_blacklisted("https://example.org/eventsarchive", ["events"])

    def test_query_is_not_a_segment(self):
        assert not is_blacklisted("https://example.org/page?calendar=1", ["calendar"])
