"""
Tests for the FeedParser pipeline and its collaborators.

No network: the fetcher is replaced by small stand-ins that return canned
pages or raise FetchError, and the requests session by a stub.
"""

import io
import json
import logging
import sys

import pytest
from pydantic import ValidationError
from requests.exceptions import ConnectionError as RequestsConnectionError

from feed_parser import (
    ContainerNotFound,
    DocumentLoader,
    Feed,
    FeedOptions,
    FeedParser,
    FeedPost,
    FeedPostType,
    FetchError,
    Fetcher,
    InvalidOptionError,
    SortMethod,
    build_feed,
    load_settings,
    options_from_path,
)
from feed_parser.logger import TRACE, ColorFormatter, resolve_level, setup_logger

import run_feed

LISTING = """
<html>
  <head><meta charset="utf-8"><title>foo</title></head>
  <body>
    <div id="siteTable" class="sitetable linklisting">
      <div class="clearleft"></div>
      <div class="thing link" data-fullname="t3_abc" data-author="alice"
           data-subreddit="foo" data-timestamp="1700000000000" data-score="5"
           data-comments-count="2" data-url="https://example.com/x.png"
           data-spoiler="false" data-nsfw="false">
        <a class="thumbnail may-blank" href="https://example.com/x.png">
          <img src="//b.thumbs.redditmedia.com/abc.jpg">
        </a>
        <div class="entry">
          <p class="title"><a class="title may-blank" href="https://example.com/x.png">Pic</a></p>
          <ul class="flat-list buttons">
            <li class="first"><a class="bylink comments" href="/r/foo/comments/abc/pic/">2 comments</a></li>
          </ul>
        </div>
      </div>
      <div class="clearleft"></div>
      <div class="thing self" data-fullname="t3_def" data-author="bob"
           data-subreddit="foo" data-timestamp="1700000100000" data-score="-1"
           data-comments-count="0" data-url="/r/foo/comments/def">
        <a class="thumbnail self may-blank" href="/r/foo/comments/def"></a>
        <div class="entry">
          <p class="title"><a class="title may-blank" href="/r/foo/comments/def">Question</a></p>
        </div>
      </div>
      <div class="nav-buttons"><span class="nextprev">next</span></div>
    </div>
  </body>
</html>
"""

EMPTY_LISTING = '<html><body><div id="siteTable"></div></body></html>'


class StaticFetcher:
    """Returns the same page for every URL and remembers what was asked."""

    def __init__(self, body):
        self.body = body
        self.requests = []

    def get(self, url, headers=None):
        self.requests.append((url, dict(headers or {})))
        return self.body


class FailingFetcher:
    def __init__(self, error):
        self.error = error

    def get(self, url, headers=None):
        raise self.error


class StubResponse:
    def __init__(self, status_code=200, content=b"", reason="OK"):
        self.status_code = status_code
        self.content = content
        self.reason = reason
        self.text = content.decode("utf-8", errors="replace")


class StubSession:
    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.calls = []
        self.closed = False

    def get(self, url, headers=None, timeout=None):
        self.calls.append({"url": url, "headers": headers, "timeout": timeout})
        if self.error:
            raise self.error
        return self.response

    def close(self):
        self.closed = True


# ------------------------------------------------------------------------- #
# FeedParser
# ------------------------------------------------------------------------- #

def test_feed_fetches_and_extracts():
    fetcher = StaticFetcher(LISTING.encode("utf-8"))
    feed = FeedParser(fetcher=fetcher).feed(FeedOptions(subreddit="foo"))

    assert fetcher.requests == [("http://old.reddit.com/r/foo", {})]
    assert [p.id for p in feed.posts] == ["t3_abc", "t3_def"]
    assert [p.type for p in feed.posts] == [FeedPostType.IMAGE, FeedPostType.TEXT]
    assert feed.posts[0].thumbnail_link == "https://b.thumbs.redditmedia.com/abc.jpg"
    assert feed.posts[0].comments_link == "/r/foo/comments/abc/pic/"
    assert feed.posts[1].thumbnail_link == ""
    assert feed.posts[1].score == -1
    # Continues after the last post, relative to the local host
    assert feed.next_page_link == "/r/foo/?after=t3_def"


def test_feed_forwards_headers():
    fetcher = StaticFetcher(LISTING)
    options = FeedOptions(headers={"Cookie": "over18=1"})
    FeedParser(fetcher=fetcher).feed(options)
    assert fetcher.requests[0][1] == {"Cookie": "over18=1"}


def test_feed_keeps_sort_in_next_page_link():
    fetcher = StaticFetcher(LISTING)
    feed = FeedParser(fetcher=fetcher).feed(FeedOptions(sort_method=SortMethod.TOP))
    assert fetcher.requests[0][0] == "http://old.reddit.com/?sort=top"
    assert feed.next_page_link == "/?after=t3_def&sort=top"


def test_feed_propagates_fetch_error():
    parser = FeedParser(fetcher=FailingFetcher(FetchError("429: Too Many Requests", status_code=429)))
    with pytest.raises(FetchError) as exc_info:
        parser.feed()
    assert exc_info.value.status_code == 429


def test_feed_without_site_table():
    parser = FeedParser(fetcher=StaticFetcher(b"<html><body><p>blocked</p></body></html>"))
    with pytest.raises(ContainerNotFound):
        parser.feed()


def test_empty_page_has_no_next_link():
    feed = FeedParser(fetcher=StaticFetcher(b"")).parse(EMPTY_LISTING)
    assert feed.posts == []
    assert feed.next_page_link is None


def test_parse_file(tmp_path):
    path = tmp_path / "front.html"
    path.write_bytes(LISTING.encode("utf-8"))
    feed = FeedParser(fetcher=StaticFetcher(b"")).parse_file(path)
    assert [p.title for p in feed.posts] == ["Pic", "Question"]
    assert feed.next_page_link == "/?after=t3_def"


def test_parse_twice_is_identical():
    parser = FeedParser(fetcher=StaticFetcher(b""))
    assert parser.parse(LISTING) == parser.parse(LISTING)


def test_build_feed():
    posts = [FeedPost(id="t3_a"), FeedPost(id="t3_b")]
    feed = build_feed(posts, FeedOptions(subreddit="pics", count=25))
    assert feed.next_page_link == "/r/pics/?after=t3_b&count=25"
    assert build_feed([], FeedOptions()).next_page_link is None


# ------------------------------------------------------------------------- #
# Schemas
# ------------------------------------------------------------------------- #

def test_feed_json_projection():
    feed = FeedParser(fetcher=StaticFetcher(b"")).parse(LISTING)
    data = json.loads(feed.to_json())

    assert data["nextPageLink"] == "/?after=t3_def"
    first = data["posts"][0]
    assert first["type"] == "image"
    assert first["commentCount"] == 2
    assert first["isNSFW"] is False
    assert first["thumbnailLink"] == "https://b.thumbs.redditmedia.com/abc.jpg"
    assert first["timestamp"].startswith("2023-11-14T22:13:20")
    assert data["posts"][1]["type"] == "text"


def test_post_is_immutable():
    post = FeedPost(id="t3_a")
    with pytest.raises(ValidationError):
        post.title = "changed"


def test_post_accepts_aliases():
    post = FeedPost.model_validate({"id": "t3_a", "commentCount": 3, "isNSFW": True, "type": "video"})
    assert post.comment_count == 3
    assert post.is_nsfw is True
    assert post.type == FeedPostType.VIDEO
    assert str(post.type) == "video"


def test_post_rejects_negative_comment_count():
    with pytest.raises(ValidationError):
        FeedPost(comment_count=-1)


def test_empty_feed_json():
    assert json.loads(Feed().to_json()) == {"posts": [], "nextPageLink": None}


# ------------------------------------------------------------------------- #
# Options
# ------------------------------------------------------------------------- #

@pytest.mark.parametrize("options, expected", [
    (FeedOptions(), "http://old.reddit.com"),
    (FeedOptions(subreddit="python"), "http://old.reddit.com/r/python"),
    (FeedOptions(subreddit="python", sort_method=SortMethod.TOP),
     "http://old.reddit.com/r/python/?sort=top"),
    (FeedOptions(sort_method=SortMethod.NEW, count=25, last_post_id="t3_x"),
     "http://old.reddit.com/?after=t3_x&count=25&sort=new"),
    (FeedOptions(base_url="", last_post_id="t3_x"), "/?after=t3_x"),
    (FeedOptions(base_url=""), ""),
])
def test_to_url(options, expected):
    assert options.to_url() == expected


def test_next_page_does_not_modify_original():
    options = FeedOptions(subreddit="foo")
    following = options.next_page("t3_z")
    assert following.base_url == ""
    assert following.last_post_id == "t3_z"
    assert options.base_url == "http://old.reddit.com"
    assert options.last_post_id is None


def test_negative_count_rejected():
    with pytest.raises(ValidationError):
        FeedOptions(count=-25)


def test_sort_method_from_string():
    assert SortMethod.from_string("controversial") is SortMethod.CONTROVERSIAL
    assert SortMethod.from_string("gilded").url_string == "gilded"
    with pytest.raises(InvalidOptionError):
        SortMethod.from_string("best")
    with pytest.raises(InvalidOptionError):
        SortMethod.from_string("")


@pytest.mark.parametrize("path, query, subreddit, sort_method, after, wants_json", [
    ("/", "", None, SortMethod.DEFAULT, None, False),
    ("/hot", "", None, SortMethod.HOT, None, False),
    ("/top.json", "", None, SortMethod.TOP, None, True),
    ("/", "after=t3_x", None, SortMethod.DEFAULT, "t3_x", False),
    ("/", "after=t3_x.json", None, SortMethod.DEFAULT, "t3_x", True),
    ("/r/foobar", "", "foobar", SortMethod.DEFAULT, None, False),
    ("/r/foobar.json", "", "foobar", SortMethod.DEFAULT, None, True),
    ("/r/foobar/rising", "", "foobar", SortMethod.RISING, None, False),
    ("/r/foobar/new/", "after=t3_y", "foobar", SortMethod.DEFAULT, "t3_y", False),
    ("/r/foobar/new", "after=t3_y", "foobar", SortMethod.NEW, "t3_y", False),
])
def test_options_from_path(path, query, subreddit, sort_method, after, wants_json):
    routed = options_from_path(path, query)
    assert routed.options.subreddit == subreddit
    assert routed.options.sort_method == sort_method
    assert routed.options.last_post_id == after
    assert routed.wants_json is wants_json


def test_options_from_path_drops_accept_encoding():
    routed = options_from_path("/", headers={"Accept-Encoding": "gzip", "Cookie": "a=b"})
    assert routed.options.headers == {"Cookie": "a=b"}


def test_options_from_path_drops_connection_headers():
    routed = options_from_path("/", headers={
        "Host": "localhost:8080",
        "Connection": "keep-alive",
        "Content-Length": "0",
        "Transfer-Encoding": "chunked",
        "Keep-Alive": "timeout=5",
        "Proxy-Connection": "keep-alive",
        "TE": "trailers",
        "Upgrade": "h2c",
        "Cookie": "a=b",
        "User-Agent": "browser",
    })
    assert routed.options.headers == {"Cookie": "a=b", "User-Agent": "browser"}


def test_options_from_path_host_only():
    routed = options_from_path("/", headers={"Host": "localhost:8080", "Cookie": "a=b"})
    assert routed.options.headers == {"Cookie": "a=b"}


# ------------------------------------------------------------------------- #
# Fetcher
# ------------------------------------------------------------------------- #

def test_fetcher_returns_body():
    session = StubSession(StubResponse(200, b"<html></html>"))
    fetcher = Fetcher(session=session, timeout=5, user_agent="feed-parser/test")
    assert fetcher.get("http://old.reddit.com", {"Cookie": "a=b"}) == b"<html></html>"
    call = session.calls[0]
    assert call["timeout"] == 5
    assert call["headers"] == {"Cookie": "a=b", "User-Agent": "feed-parser/test"}


def test_fetcher_keeps_caller_user_agent():
    session = StubSession(StubResponse(200, b""))
    Fetcher(session=session, user_agent="default").get("http://x", {"user-agent": "mine"})
    assert session.calls[0]["headers"] == {"user-agent": "mine"}


def test_fetcher_non_200():
    session = StubSession(StubResponse(503, b"try later", reason="Service Unavailable"))
    with pytest.raises(FetchError) as exc_info:
        Fetcher(session=session).get("http://old.reddit.com")
    assert exc_info.value.status_code == 503
    assert exc_info.value.body == "try later"
    assert exc_info.value.to_response()["status_code"] == 503


def test_fetcher_transport_error():
    session = StubSession(error=RequestsConnectionError("refused"))
    with pytest.raises(FetchError) as exc_info:
        Fetcher(session=session).get("http://old.reddit.com")
    assert exc_info.value.status_code is None


def test_fetcher_context_manager_closes_session():
    session = StubSession(StubResponse(200, b"ok"))
    with Fetcher(session=session) as fetcher:
        assert fetcher.get("http://x") == b"ok"
        assert session.closed is False
    assert session.closed is True


# ------------------------------------------------------------------------- #
# DocumentLoader, logging, config
# ------------------------------------------------------------------------- #

@pytest.mark.parametrize("raw, expected", [
    (b'<html><head><meta charset="utf-8">', "utf-8"),
    (b'<meta charset="ISO-8859-1">', "windows-1252"),
    (b'<meta http-equiv="Content-Type" content="text/html; charset=shift_jis">', "shift_jis"),
    (b"<html><body>no meta</body></html>", "utf-8"),
])
def test_detect_charset(raw, expected):
    assert DocumentLoader.detect_charset_from_bytes(raw) == expected


def test_loader_decodes_declared_charset():
    raw = '<meta charset="windows-1252"><p>café</p>'.encode("windows-1252")
    doc = DocumentLoader().load(raw)
    assert doc.find("p").get_text() == "café"


def test_loader_keeps_class_as_string():
    doc = DocumentLoader().load('<p class="a b">x</p>')
    assert doc.find("p")["class"] == "a b"


def test_loader_unknown_charset_falls_back():
    doc = DocumentLoader().load(b'<meta charset="x-made-up"><p>ok</p>')
    assert doc.find("p").get_text() == "ok"


def test_resolve_level():
    assert resolve_level("trace") == TRACE
    assert resolve_level("DEBUG") == logging.DEBUG
    assert resolve_level(logging.WARNING) == logging.WARNING
    with pytest.raises(ValueError):
        resolve_level("loud")


def test_load_settings(monkeypatch):
    monkeypatch.setenv("FEED_PARSER_BASE_URL", "https://old.example.com")
    monkeypatch.setenv("FEED_PARSER_TIMEOUT", "5")
    monkeypatch.setenv("FEED_PARSER_LOG_LEVEL", "debug")
    monkeypatch.delenv("FEED_PARSER_USER_AGENT", raising=False)

    settings = load_settings()
    assert settings.base_url == "https://old.example.com"
    assert settings.timeout == 5.0
    assert settings.log_level == "debug"
    assert settings.user_agent is None


def test_load_settings_applies_only_explicit_env_file(monkeypatch):
    applied = []
    monkeypatch.setattr("feed_parser.config.load_dotenv", applied.append)

    load_settings()
    assert applied == []

    load_settings("custom.env")
    assert applied == ["custom.env"]


class TerminalStream(io.StringIO):
    def isatty(self):
        return True


@pytest.mark.parametrize("stream, formatter_type", [
    (io.StringIO(), logging.Formatter),
    (TerminalStream(), ColorFormatter),
])
def test_setup_logger_colors_only_terminals(monkeypatch, stream, formatter_type):
    monkeypatch.setattr(sys, "stderr", stream)
    logger = setup_logger(name=f"feed_parser_color_{formatter_type.__name__}")
    try:
        assert type(logger.handlers[0].formatter) is formatter_type
    finally:
        for handler in list(logger.handlers):
            logger.removeHandler(handler)


# ------------------------------------------------------------------------- #
# Command line
# ------------------------------------------------------------------------- #

class ClosingFetcher(StaticFetcher):
    def __init__(self, body=b"", error=None):
        super().__init__(body)
        self.error = error
        self.closed = False

    def get(self, url, headers=None):
        if self.error:
            raise self.error
        return super().get(url, headers)

    def close(self):
        self.closed = True

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_value, traceback):
        self.close()


@pytest.fixture
def run_cli(monkeypatch):
    for name in ("FEED_PARSER_BASE_URL", "FEED_PARSER_TIMEOUT",
                 "FEED_PARSER_LOG_LEVEL", "FEED_PARSER_USER_AGENT"):
        monkeypatch.delenv(name, raising=False)

    def run(*argv):
        monkeypatch.setattr(sys, "argv", ["run_feed.py", *argv])
        run_feed.main()

    return run


@pytest.fixture
def fake_fetchers(monkeypatch):
    """Replace the CLI's fetcher; returns the list of fetchers it created."""
    created = []

    def install(body=b"", error=None):
        def make_fetcher(**kwargs):
            fetcher = ClosingFetcher(body, error)
            created.append(fetcher)
            return fetcher
        monkeypatch.setattr(run_feed, "Fetcher", make_fetcher)
        return created

    return install


def test_cli_missing_file_does_not_stop_the_run(tmp_path, run_cli):
    good = tmp_path / "good.html"
    good.write_text(LISTING, encoding="utf-8")
    missing = tmp_path / "missing.html"
    out = tmp_path / "out.json"

    run_cli(str(missing), str(good), "-o", str(out))

    results = json.loads(out.read_text(encoding="utf-8"))
    assert [r["file"] for r in results] == ["missing.html", "good.html"]
    assert results[0]["status"] == "error"
    assert "missing.html" in results[0]["error"]
    assert results[1]["status"] == "success"
    assert [p["id"] for p in results[1]["feed"]["posts"]] == ["t3_abc", "t3_def"]


def test_cli_page_without_site_table_is_an_error_entry(tmp_path, run_cli):
    page = tmp_path / "blank.html"
    page.write_text("<html><body></body></html>", encoding="utf-8")
    out = tmp_path / "out.json"

    run_cli(str(page), "-o", str(out))

    [result] = json.loads(out.read_text(encoding="utf-8"))
    assert result["status"] == "error"
    assert result["error"] == "site table not found"


def test_cli_path_without_json_suffix_prints_text(tmp_path, run_cli, capsys):
    good = tmp_path / "good.html"
    good.write_text(LISTING, encoding="utf-8")

    run_cli(str(good), "--path", "/r/foo/top")

    out = capsys.readouterr().out
    assert "== good.html" in out
    assert "[image] Pic (5 points, 2 comments) https://example.com/x.png" in out
    assert "[text] Question (-1 points, 0 comments) /r/foo/comments/def" in out
    assert "next: /r/foo/?after=t3_def&sort=top" in out


def test_cli_live_path_with_json_suffix(run_cli, fake_fetchers, capsys):
    created = fake_fetchers(LISTING.encode("utf-8"))

    run_cli("--path", "/r/foo/top.json")

    feed = json.loads(capsys.readouterr().out)
    [fetcher] = created
    assert fetcher.requests[0][0] == "http://old.reddit.com/r/foo/?sort=top"
    assert [p["id"] for p in feed["posts"]] == ["t3_abc", "t3_def"]
    assert feed["nextPageLink"] == "/r/foo/?after=t3_def&sort=top"
    assert fetcher.closed is True


def test_cli_closes_fetcher_when_fetch_fails(run_cli, fake_fetchers):
    created = fake_fetchers(error=FetchError("503: Service Unavailable", status_code=503))

    with pytest.raises(SystemExit) as exc_info:
        run_cli("--subreddit", "foo")

    assert exc_info.value.code == 1
    assert created[0].closed is True


def test_cli_rejects_unknown_sort(run_cli):
    with pytest.raises(SystemExit) as exc_info:
        run_cli("--sort", "best")
    assert exc_info.value.code == 2
