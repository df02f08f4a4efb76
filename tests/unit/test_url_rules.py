"""Unit tests for local URL inspection."""

from learnpath.engines.validation.url_rules import (
    classify_url_kind,
    extract_domain,
    extract_urls,
    is_http_url,
    is_placeholder_url,
    is_youtube_url,
    normalize_url,
    title_from_url,
    youtube_thumbnail,
    youtube_video_id,
)


class TestDomainsAndNormalisation:
    def test_extract_domain_strips_www(self):
        assert extract_domain("https://www.nngroup.com/articles/x") == "nngroup.com"
        assert extract_domain("not a url") == ""

    def test_normalize_url_ignores_case_www_slash_and_fragment(self):
        a = normalize_url("HTTPS://WWW.Plato.Stanford.edu/entries/ethics/#intro")
        b = normalize_url("https://plato.stanford.edu/entries/ethics")
        assert a == b

    def test_normalize_url_keeps_query(self):
        assert normalize_url("https://youtube.com/watch?v=abc") != normalize_url("https://youtube.com/watch?v=xyz")


class TestYouTube:
    def test_video_id_from_common_shapes(self):
        assert youtube_video_id("https://www.youtube.com/watch?v=dQw4w9WgXcQ") == "dQw4w9WgXcQ"
        assert youtube_video_id("https://youtu.be/dQw4w9WgXcQ") == "dQw4w9WgXcQ"
        assert youtube_video_id("https://www.youtube.com/embed/dQw4w9WgXcQ") == "dQw4w9WgXcQ"
        assert youtube_video_id("https://vimeo.com/123") is None

    def test_thumbnail(self):
        assert youtube_thumbnail("https://youtu.be/dQw4w9WgXcQ") == "https://i.ytimg.com/vi/dQw4w9WgXcQ/maxresdefault.jpg"
        assert youtube_thumbnail("https://nngroup.com/a") == ""

    def test_is_youtube_url(self):
        assert is_youtube_url("https://m.youtube.com/watch?v=dQw4w9WgXcQ")
        assert not is_youtube_url("https://vimeo.com/1")


class TestPlaceholdersAndFormat:
    def test_placeholders(self):
        assert is_placeholder_url("")
        assert is_placeholder_url("https://www.youtube.com/watch?v=VIDEO_ID")
        assert is_placeholder_url("https://coursera.org/learn/x/lecture/LECTURE_ID")
        assert not is_placeholder_url("https://www.youtube.com/watch?v=dQw4w9WgXcQ")

    def test_is_http_url(self):
        assert is_http_url("https://nngroup.com")
        assert not is_http_url("ftp://files.test/a")
        assert not is_http_url("nngroup.com/articles")


class TestClassification:
    def test_kinds(self):
        assert classify_url_kind("https://www.youtube.com/watch?v=dQw4w9WgXcQ") == "video"
        assert classify_url_kind("https://www.gutenberg.org/ebooks/1342") == "book"
        assert classify_url_kind("https://www.coursera.org/learn/ux") == "mooc"
        assert classify_url_kind("https://open.spotify.com/episode/1") == "podcast"
        assert classify_url_kind("https://www.nngroup.com/articles/usability-101/") == "reading"

    def test_title_from_url(self):
        assert title_from_url("https://www.nngroup.com/articles/usability-101-introduction.html") == (
            "Usability 101 introduction"
        )
        assert title_from_url("https://nngroup.com/") == "nngroup.com"


def test_extract_urls_dedupes_and_trims_punctuation():
    text = (
        "See https://plato.stanford.edu/entries/ethics/. Also (https://nngroup.com/articles/a) "
        "and again https://plato.stanford.edu/entries/ethics"
    )
    assert extract_urls(text) == [
        "https://plato.stanford.edu/entries/ethics/",
        "https://nngroup.com/articles/a",
    ]
