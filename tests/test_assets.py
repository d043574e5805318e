"""Tests for background image fetching and cover cropping."""
import io
import tempfile
import unittest
from pathlib import Path
from unittest import mock

import requests
from PIL import Image

from banner.assets import HttpImageFetcher, cover_image, decode_image
from banner.document import load_document
from banner.errors import ResourceFetchError
from banner.geometry import CanvasSize
from banner.scene import GradientBackgroundOp, assemble


def _png_bytes(size=(20, 10), color=(255, 0, 0)):
    buffer = io.BytesIO()
    Image.new("RGB", size, color).save(buffer, format="PNG")
    return buffer.getvalue()


def _with_byte(data, offset, value):
    corrupted = bytearray(data)
    corrupted[offset] = value
    return bytes(corrupted)


def _session_returning(content):
    session = mock.Mock(spec=requests.Session)
    session.headers = {}
    session.get.return_value.content = content
    return session


class HttpImageFetcherTest(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.root = Path(self._tmp.name)
        self.path = self.root / "bg.png"
        self.path.write_bytes(_png_bytes())

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def test_local_reads_are_refused_by_default(self) -> None:
        fetcher = HttpImageFetcher()
        for url in (str(self.path), self.path.as_uri()):
            with self.assertRaises(ResourceFetchError):
                fetcher(url)

    def test_local_root_allows_files_beneath_it(self) -> None:
        fetcher = HttpImageFetcher(local_root=self.root)
        self.assertEqual(fetcher(str(self.path)).size, (20, 10))
        self.assertEqual(fetcher(self.path.as_uri()).size, (20, 10))
        self.assertEqual(fetcher("bg.png").size, (20, 10))

    def test_local_root_rejects_escapes(self) -> None:
        inner = self.root / "allowed"
        inner.mkdir()
        fetcher = HttpImageFetcher(local_root=inner)
        with self.assertRaises(ResourceFetchError):
            fetcher(str(self.path))
        with self.assertRaises(ResourceFetchError):
            fetcher("../bg.png")

    def test_missing_local_file(self) -> None:
        with self.assertRaises(ResourceFetchError):
            HttpImageFetcher(local_root=self.root)("missing.png")

    def test_file_url_in_document_falls_back_to_gradient(self) -> None:
        doc = load_document(
            {"colors": ["#111111", "#222222"], "backgroundImage": {"url": self.path.as_uri()}},
            canvas={"width": 80, "height": 40},
        )
        with self.assertLogs("banner.scene", level="WARNING"):
            scene = assemble(doc, fetcher=HttpImageFetcher())
        self.assertTrue(scene.degraded)
        self.assertEqual(scene.background, GradientBackgroundOp("#111111", "#222222"))

    def test_unsupported_scheme(self) -> None:
        with self.assertRaises(ResourceFetchError):
            HttpImageFetcher()("ftp://example.com/bg.png")

    def test_http_download(self) -> None:
        session = _session_returning(_png_bytes((8, 8)))
        fetcher = HttpImageFetcher(timeout=3, session=session)

        img = fetcher("https://example.com/bg.png")

        self.assertEqual(img.size, (8, 8))
        session.get.assert_called_once_with("https://example.com/bg.png", timeout=3)
        self.assertIn("User-Agent", session.headers)

    def test_http_error_status(self) -> None:
        session = _session_returning(b"")
        session.get.return_value.raise_for_status.side_effect = requests.HTTPError("404 Not Found")
        with self.assertRaises(ResourceFetchError) as ctx:
            HttpImageFetcher(session=session)("https://example.com/missing.png")
        self.assertIn("missing.png", str(ctx.exception))


class DecodeTest(unittest.TestCase):
    def setUp(self) -> None:
        self.png = _png_bytes((64, 64), (30, 60, 90))

    def test_garbage_bytes(self) -> None:
        with self.assertRaises(ResourceFetchError):
            decode_image(b"not an image", "test")

    def test_truncated_header_chunk(self) -> None:
        # IHDR length field claims fewer than its 13 bytes
        with self.assertRaises(ResourceFetchError):
            decode_image(_with_byte(self.png, 11, 5), "test")

    def test_broken_chunk_after_header(self) -> None:
        # A zero IDAT length makes the decoder read a chunk header out of pixel data
        idat = self.png.index(b"IDAT")
        corrupted = self.png[:idat - 4] + b"\x00\x00\x00\x00" + self.png[idat:]
        with self.assertRaises(ResourceFetchError):
            decode_image(corrupted, "test")

    def test_single_corrupt_bytes_only_raise_fetch_errors(self) -> None:
        for offset in range(8, len(self.png)):
            corrupted = _with_byte(self.png, offset, self.png[offset] ^ 0xFF)
            with self.subTest(offset=offset):
                try:
                    decode_image(corrupted, "test")
                except ResourceFetchError:
                    pass

    def test_cover_crops_to_canvas(self) -> None:
        wide = Image.new("RGB", (400, 100), (0, 0, 255))
        covered = cover_image(wide, CanvasSize(100, 100))
        self.assertEqual(covered.size, (100, 100))
        self.assertEqual(covered.getpixel((50, 50)), (0, 0, 255))


if __name__ == "__main__":
    unittest.main()
