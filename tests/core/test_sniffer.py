"""
图片字节嗅探单元测试
"""
import io
import unittest

from PIL import Image
from core.models import ImageFormat
from core.sniffer import sniff_image


def _image_bytes(fmt, size=(3, 2)):
    buf = io.BytesIO()
    Image.new("RGB", size, color="red").save(buf, fmt)
    return buf.getvalue()


class TestSniffImage(unittest.TestCase):
    def test_png(self):
        result = sniff_image(_image_bytes("PNG"))
        self.assertEqual(result.format, ImageFormat.PNG)
        self.assertEqual(result.mime_type, "image/png")
        self.assertEqual((result.width, result.height), (3, 2))

    def test_gif(self):
        result = sniff_image(_image_bytes("GIF", (4, 4)))
        self.assertEqual(result.format, ImageFormat.GIF)

    def test_svg_text(self):
        result = sniff_image(b'<?xml version="1.0"?>\n<svg xmlns="http://www.w3.org/2000/svg"></svg>')
        self.assertEqual(result.format, ImageFormat.SVG)
        self.assertEqual(result.mime_type, "image/svg+xml")

    def test_html_is_not_an_image(self):
        self.assertIsNone(sniff_image(b"<!doctype html><html><body>hi</body></html>"))

    def test_empty(self):
        self.assertIsNone(sniff_image(b""))


if __name__ == "__main__":
    unittest.main()
