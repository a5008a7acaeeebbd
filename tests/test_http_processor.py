from email import policy
from email.parser import BytesParser
from pathlib import Path

import pytest

from rics_data.http_processor import (
    FileReply,
    GetFileNameProcessor,
    PostFileProcessor,
    parse_reply,
)

ARCHIVE = "cache/20240101T000000-status.bz2"


class FakeRepo:
    def __init__(self, md5="abc123", path=ARCHIVE):
        self.md5 = md5
        self.path = path

    def compressed_tag(self):
        return self.md5, self.path


def test_parse_reply_reads_code_and_message():
    assert parse_reply('{"code": 0, "message": "ok"}') == FileReply(code=0, message="ok")


def test_parse_reply_rejects_bad_input():
    assert parse_reply("not json") is None
    assert parse_reply("[1]") is None


def test_get_request_carries_digest():
    request = GetFileNameProcessor(FakeRepo()).serialize(None)
    assert request.method == "GET"
    assert request.uri == "/api-gateway/gateway/cache/checkFile/abc123"
    assert request.content_type == "application/json"
    assert request.body == b""


def test_get_deserialize():
    processor = GetFileNameProcessor(FakeRepo())
    assert processor.deserialize('{"code": 3}').code == 3
    assert processor.deserialize("oops") is None


def _parts(request):
    raw = f"Content-Type: {request.content_type}\r\n\r\n".encode() + request.body
    message = BytesParser(policy=policy.default).parsebytes(raw)
    return {p.get_param("name", header="content-disposition"): p for p in message.iter_parts()}


def test_post_builds_multipart_form(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    Path("cache").mkdir()
    Path(ARCHIVE).write_bytes(b"archive-bytes")
    request = PostFileProcessor(FakeRepo(), "SN-TEST").serialize(None)
    assert request.method == "POST"
    assert request.uri == "/api-gateway/gateway/cache/upload"
    assert request.content_type.startswith("multipart/form-data; boundary=")
    parts = _parts(request)
    assert parts["fileName"].get_payload(decode=True) == b"20240101T000000-status.bz2"
    assert parts["topic"].get_payload(decode=True) == b"status"
    assert parts["sn"].get_payload(decode=True) == b"SN-TEST"
    assert parts["file"].get_payload(decode=True) == b"archive-bytes"
    assert parts["file"].get_filename() == ARCHIVE
    assert parts["file"].get_content_type() == "application/octet-stream"


def test_post_missing_archive_raises(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    with pytest.raises(FileNotFoundError):
        PostFileProcessor(FakeRepo(), "SN-TEST").serialize(None)


def test_post_deserialize():
    processor = PostFileProcessor(FakeRepo(), "SN-TEST")
    assert processor.deserialize('{"code": 0, "message": "done"}').message == "done"
    assert processor.deserialize("1") is None