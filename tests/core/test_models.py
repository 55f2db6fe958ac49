"""
ImageRecord 数据模型单元测试
"""
import unittest

from pydantic import ValidationError
from core.models import ExtractRequest, ImageFormat, ImageRecord, SourceType


class TestImageRecord(unittest.TestCase):
    def test_defaults(self):
        record = ImageRecord(url="https://example.com/a.png")
        self.assertEqual(record.filename, "image")
        self.assertEqual(record.format, ImageFormat.UNKNOWN)
        self.assertEqual(record.source_type, SourceType.IMG)
        self.assertTrue(record.selected)
        self.assertFalse(record.is_lazy_loaded)

    def test_empty_url_rejected(self):
        with self.assertRaises(ValidationError):
            ImageRecord(url="   ")

    def test_negative_size_rejected(self):
        with self.assertRaises(ValidationError):
            ImageRecord(url="https://example.com/a.png", size=-1)

    def test_aspect_ratio_derived(self):
        record = ImageRecord(url="https://example.com/a.png", width=200, height=100)
        self.assertEqual(record.aspect_ratio, 2.0)

    def test_non_positive_dimension_dropped(self):
        record = ImageRecord(url="https://example.com/a.png", width=0, height=100)
        self.assertIsNone(record.width)
        self.assertIsNone(record.aspect_ratio)

    def test_to_dict_uses_camel_case_and_omits_none(self):
        record = ImageRecord(
            url="https://example.com/a.png",
            mime_type="image/png",
            source_type=SourceType.BACKGROUND,
            is_lazy_loaded=True,
        )
        data = record.to_dict()
        self.assertEqual(data["mimeType"], "image/png")
        self.assertEqual(data["sourceType"], "background")
        self.assertTrue(data["isLazyLoaded"])
        self.assertNotIn("size", data)
        self.assertNotIn("width", data)

    def test_populate_by_alias(self):
        record = ImageRecord(url="https://example.com/a.png", mimeType="image/gif")
        self.assertEqual(record.mime_type, "image/gif")

    def test_is_data_uri(self):
        self.assertTrue(ImageRecord(url="data:image/png;base64,AAAA").is_data_uri)
        self.assertFalse(ImageRecord(url="https://example.com/a.png").is_data_uri)


class TestExtractRequest(unittest.TestCase):
    def test_missing_url(self):
        with self.assertRaises(ValidationError):
            ExtractRequest.model_validate({})

    def test_empty_url(self):
        with self.assertRaises(ValidationError):
            ExtractRequest.model_validate({"url": ""})

    def test_valid(self):
        self.assertEqual(ExtractRequest.model_validate({"url": "example.com"}).url, "example.com")


if __name__ == "__main__":
    unittest.main()
