from __future__ import annotations

import gzip
from pathlib import Path

import pytest

from mcp_log_rules_server.core.engine import split_lines
from mcp_log_rules_server.core.log_source import read_log_text


@pytest.mark.asyncio
async def test_read_plain_log_keeps_crlf(tmp_path: Path) -> None:
    path = tmp_path / "build.log"
    path.write_bytes(b"Build failed\r\nok\r\n")

    text = await read_log_text(path)

    assert text == "Build failed\r\nok\r\n"
    assert split_lines(text) == ["Build failed", "ok", ""]


@pytest.mark.asyncio
async def test_read_gzip_log(tmp_path: Path) -> None:
    path = tmp_path / "build.log.gz"
    with gzip.open(path, "wt", encoding="utf-8") as f:
        f.write("error CS0029: boom\n")

    assert await read_log_text(path) == "error CS0029: boom\n"


@pytest.mark.asyncio
async def test_read_replaces_undecodable_bytes(tmp_path: Path) -> None:
    path = tmp_path / "bin.log"
    path.write_bytes(b"bad \xff byte\n")

    assert "�" in await read_log_text(path)


@pytest.mark.asyncio
async def test_read_missing_file_raises(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        await read_log_text(tmp_path / "missing.log")
