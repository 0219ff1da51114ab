"""
Tests for the encryption collaborators.
"""

import base64
import shlex
import sys
import textwrap

import pytest

from content_registry.config import Settings
from content_registry.core.encrypter import (
    CommandEncrypter,
    StubEncrypter,
    get_encrypter,
    sha256_file,
)
from content_registry.errors import EncryptionError

TOOL = textwrap.dedent(
    """
    import argparse, base64, json, sys

    parser = argparse.ArgumentParser()
    parser.add_argument("--input")
    parser.add_argument("--output")
    parser.add_argument("--disposition")
    parser.add_argument("--mode", default="ok")
    args = parser.parse_args()

    if args.mode == "fail":
        sys.stderr.write("boom")
        sys.exit(3)
    if args.mode == "garbage":
        print("not json")
        sys.exit(0)
    if args.mode == "nofile":
        print(json.dumps({"content_key": base64.b64encode(b"k").decode()}))
        sys.exit(0)

    data = open(args.input, "rb").read()[::-1]
    with open(args.output, "wb") as f:
        f.write(data)
    print(json.dumps({
        "content_key": base64.b64encode(b"tool-key").decode(),
        "size": len(data),
        "checksum": "abc",
    }))
    """
)


@pytest.fixture
def tool_command(tmp_path):
    script = tmp_path / "fake_tool.py"
    script.write_text(TOOL)

    def _command(mode="ok"):
        return f"{shlex.quote(sys.executable)} {shlex.quote(str(script))} --mode {mode}"

    return _command


@pytest.fixture
def master(tmp_path):
    path = tmp_path / "master.epub"
    path.write_bytes(b"plain master bytes")
    return path


class TestStubEncrypter:
    def test_copies_and_describes(self, tmp_path, master):
        artifact = StubEncrypter(str(tmp_path / "work")).encrypt(master, "my-book")

        assert artifact.path.parent == tmp_path / "work"
        assert artifact.path.read_bytes() == b"plain master bytes"
        assert artifact.location == "my-book"
        assert artifact.length == len(b"plain master bytes")
        assert artifact.sha256 == sha256_file(master)
        assert len(artifact.content_key) == 32

    def test_keys_differ(self, tmp_path, master):
        encrypter = StubEncrypter(str(tmp_path))
        assert encrypter.encrypt(master, "a").content_key != encrypter.encrypt(master, "a").content_key

    def test_missing_input(self, tmp_path):
        with pytest.raises(EncryptionError):
            StubEncrypter(str(tmp_path)).encrypt(tmp_path / "absent.epub", "x")


class TestCommandEncrypter:
    def test_success(self, tmp_path, master, tool_command):
        encrypter = CommandEncrypter(tool_command(), work_directory=str(tmp_path / "work"))

        artifact = encrypter.encrypt(master, "my-book")

        assert artifact.content_key == b"tool-key"
        assert artifact.path.read_bytes() == b"plain master bytes"[::-1]
        assert artifact.length == len(b"plain master bytes")
        assert artifact.sha256 == "abc"
        assert artifact.location == "my-book"

    @pytest.mark.parametrize("mode", ["fail", "garbage", "nofile"])
    def test_failures(self, tmp_path, master, tool_command, mode):
        encrypter = CommandEncrypter(tool_command(mode), work_directory=str(tmp_path / "work"))
        with pytest.raises(EncryptionError):
            encrypter.encrypt(master, "my-book")

    def test_missing_executable(self, tmp_path, master):
        encrypter = CommandEncrypter(
            "/nonexistent/encrypt-tool", work_directory=str(tmp_path)
        )
        with pytest.raises(EncryptionError):
            encrypter.encrypt(master, "x")

    def test_requires_command(self):
        with pytest.raises(ValueError):
            CommandEncrypter("")


class TestGetEncrypter:
    def test_stub(self, tmp_path):
        settings = Settings(encrypter="stub", work_directory=str(tmp_path))
        assert isinstance(get_encrypter(settings), StubEncrypter)

    def test_command(self, tmp_path):
        settings = Settings(
            encrypter="command",
            encrypt_command="encrypt-tool --fast",
            work_directory=str(tmp_path),
        )
        encrypter = get_encrypter(settings)
        assert isinstance(encrypter, CommandEncrypter)
        assert encrypter.command == ["encrypt-tool", "--fast"]

    def test_unknown(self):
        with pytest.raises(ValueError):
            get_encrypter(Settings(encrypter="rot13"))
