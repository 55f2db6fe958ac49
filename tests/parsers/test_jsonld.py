"""
JSON-LD 图片提取单元测试
"""
import unittest

from parsers.jsonld import find_jsonld_images, parse_jsonld


class TestParseJsonLd(unittest.TestCase):
    def test_malformed_raises_value_error(self):
        with self.assertRaises(ValueError):
            parse_jsonld("{not json")

    def test_empty_raises_value_error(self):
        with self.assertRaises(ValueError):
            parse_jsonld("   ")


class TestFindJsonLdImages(unittest.TestCase):
    def test_string_image(self):
        images = find_jsonld_images({"@type": "Article", "image": "https://x.com/a.jpg"})
        self.assertEqual([i.url for i in images], ["https://x.com/a.jpg"])

    def test_array_of_strings_and_objects(self):
        data = {"image": ["https://x.com/a.jpg", {"url": "https://x.com/b.jpg", "width": 800, "height": 600}]}
        images = find_jsonld_images(data)
        self.assertEqual([i.url for i in images], ["https://x.com/a.jpg", "https://x.com/b.jpg"])
        self.assertEqual((images[1].width, images[1].height), (800, 600))

    def test_image_object_with_content_url(self):
        images = find_jsonld_images({"thumbnail": {"@type": "ImageObject", "contentUrl": "/t.png"}})
        self.assertEqual(images[0].url, "/t.png")

    def test_nested_graph(self):
        data = {
            "@graph": [
                {"@type": "Organization", "logo": {"url": "https://x.com/logo.svg"}},
                {"@type": "WebPage", "primaryImageOfPage": {"url": "https://x.com/hero.webp"}},
            ]
        }
        urls = [i.url for i in find_jsonld_images(data)]
        self.assertEqual(urls, ["https://x.com/logo.svg", "https://x.com/hero.webp"])

    def test_top_level_array(self):
        data = [{"photo": "https://x.com/p.jpg"}, {"name": "no image"}]
        self.assertEqual([i.url for i in find_jsonld_images(data)], ["https://x.com/p.jpg"])

    def test_non_image_values_ignored(self):
        self.assertEqual(find_jsonld_images({"image": 42, "name": "x"}), [])
        self.assertEqual(find_jsonld_images("just a string"), [])


if __name__ == "__main__":
    unittest.main()
