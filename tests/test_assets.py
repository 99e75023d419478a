"""Tests for asset resolution."""

from pathlib import Path

import pytest
import requests

from scenereel.services.assets import AssetError, AssetFetcher


class FakeResponse:
    def __init__(self, body: bytes, status: int = 200):
        self._body = body
        self.status_code = status

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")

    def iter_content(self, chunk_size=1):
        for start in range(0, len(self._body), chunk_size):
            yield self._body[start:start + chunk_size]


class FakeSession:
    def __init__(self, body: bytes = b"media-bytes", status: int = 200):
        self.body = body
        self.status = status
        self.requested = []

    def get(self, url, stream=False, timeout=None):
        self.requested.append(url)
        return FakeResponse(self.body, self.status)


class TestAssetFetcher:
    """Tests for AssetFetcher.resolve."""

    def test_local_path(self, tmp_path: Path):
        target = tmp_path / "a.png"
        target.write_bytes(b"x")
        fetcher = AssetFetcher(cache_dir=tmp_path / "cache", session=FakeSession())
        assert fetcher.resolve(str(target)) == target

    def test_file_uri(self, tmp_path: Path):
        target = tmp_path / "a b.png"
        target.write_bytes(b"x")
        fetcher = AssetFetcher(cache_dir=tmp_path / "cache", session=FakeSession())
        assert fetcher.resolve(f"file://{str(target).replace(' ', '%20')}") == target

    def test_missing_file(self, tmp_path: Path):
        fetcher = AssetFetcher(cache_dir=tmp_path / "cache", session=FakeSession())
        with pytest.raises(AssetError):
            fetcher.resolve(str(tmp_path / "missing.png"))

    def test_download_cached(self, tmp_path: Path):
        session = FakeSession(b"image-data")
        fetcher = AssetFetcher(cache_dir=tmp_path / "cache", session=session)
        url = "https://cdn.example.com/scenes/1.png?sig=abc"

        path = fetcher.resolve(url)
        assert path.read_bytes() == b"image-data"
        assert path.suffix == ".png"
        assert path.parent == tmp_path / "cache"

        again = AssetFetcher(cache_dir=tmp_path / "cache", session=session)
        assert again.resolve(url) == path
        assert session.requested == [url]

    def test_download_failure(self, tmp_path: Path):
        fetcher = AssetFetcher(cache_dir=tmp_path / "cache", session=FakeSession(status=404))
        with pytest.raises(AssetError) as excinfo:
            fetcher.resolve("https://cdn.example.com/missing.mp3")
        assert "404" in str(excinfo.value)
        assert not any((tmp_path / "cache").iterdir())
