"""
ImageParser 单元测试（真实 HTML 片段，lxml 解析）
"""
import unittest

from config import ExtractorConfig
from core.deduplicator import deduplicate
from core.models import ImageFormat, SourceType
from parsers.base import SNIPPET_MAX_LENGTH
from parsers.image_parser import ImageParser

PAGE = "https://ex.com/page"


def _scan(html, page_url=PAGE, parser=None):
    parser = parser or ImageParser(ExtractorConfig())
    return parser.parse(html, page_url)


def _by_url(records):
    result = {}
    for record in records:
        result.setdefault(record.url, record)
    return result


class TestEndToEndScenario(unittest.TestCase):
    HTML = """
    <html><body>
      <img src="/a.jpg" data-src="/a-hd.jpg">
      <picture><source srcset="/b.webp 1x, /b2.webp 2x"></picture>
      <div style="background-image:url('/c.png')"></div>
    </body></html>
    """

    def test_resolved_records(self):
        records = _by_url(deduplicate(_scan(self.HTML)))
        expected = {
            "https://ex.com/a.jpg": (ImageFormat.JPG, SourceType.IMG),
            "https://ex.com/a-hd.jpg": (ImageFormat.JPG, SourceType.IMG),
            "https://ex.com/b.webp": (ImageFormat.WEBP, SourceType.PICTURE),
            "https://ex.com/c.png": (ImageFormat.PNG, SourceType.BACKGROUND),
        }
        for url, (fmt, source_type) in expected.items():
            self.assertIn(url, records)
            self.assertEqual(records[url].format, fmt)
            self.assertEqual(records[url].source_type, source_type)

    def test_every_srcset_entry_kept(self):
        records = _by_url(deduplicate(_scan(self.HTML)))
        self.assertIn("https://ex.com/b2.webp", records)
        self.assertTrue(records["https://ex.com/b2.webp"].is_responsive)

    def test_lazy_flags_on_img(self):
        record = _by_url(_scan(self.HTML))["https://ex.com/a.jpg"]
        self.assertTrue(record.is_lazy_loaded)
        self.assertEqual(record.data_src, "/a-hd.jpg")
        self.assertEqual(record.filename, "a.jpg")

    def test_no_duplicates_after_dedup(self):
        urls = [r.url for r in deduplicate(_scan(self.HTML))]
        self.assertEqual(len(urls), len(set(urls)))


class TestImgHandler(unittest.TestCase):
    def test_dimensions_and_alt(self):
        record = _scan('<img src="/a.png" width="640px" height="480" alt="Cat">')[0]
        self.assertEqual((record.width, record.height), (640, 480))
        self.assertEqual(record.alt, "Cat")
        self.assertAlmostEqual(record.aspect_ratio, 640 / 480)
        self.assertEqual(record.mime_type, "image/png")

    def test_percentage_width_ignored(self):
        record = _scan('<img src="/a.png" width="100%">')[0]
        self.assertIsNone(record.width)

    def test_loading_lazy_flag(self):
        record = _scan('<img src="/a.png" loading="lazy">')[0]
        self.assertTrue(record.is_lazy_loaded)

    def test_unsupported_scheme_rejected(self):
        parser = ImageParser()
        records = _scan('<img src="javascript:void(0)"><img src="/ok.gif">', parser=parser)
        self.assertEqual([r.url for r in records], ["https://ex.com/ok.gif"])
        self.assertEqual(parser.last_stats["rejected"], 1)

    def test_small_data_uri_accepted(self):
        uri = "data:image/png;base64,iVBORw0KGgo="
        record = _scan(f'<img src="{uri}">')[0]
        self.assertEqual(record.url, uri)
        self.assertEqual(record.format, ImageFormat.PNG)
        self.assertEqual(record.filename, "data-image")

    def test_large_or_non_image_data_uri_rejected(self):
        big = "data:image/png;base64," + "A" * 600
        self.assertEqual(_scan(f'<img src="{big}">'), [])
        self.assertEqual(_scan('<img src="data:text/plain,hello">'), [])

    def test_base_href(self):
        records = _scan('<head><base href="https://cdn.ex.com/assets/"></head><body><img src="x.png"></body>')
        self.assertEqual(records[0].url, "https://cdn.ex.com/assets/x.png")

    def test_original_element_bounded(self):
        record = _scan(f'<img src="/a.png" alt="{"x" * 1000}">')[0]
        self.assertLessEqual(len(record.original_element), SNIPPET_MAX_LENGTH)
        self.assertTrue(record.original_element.startswith("<img"))


class TestPictureAndVideo(unittest.TestCase):
    def test_declared_type_gives_format(self):
        records = _by_url(_scan('<picture><source type="image/avif" srcset="/img?id=1"><img src="/f.jpg"></picture>'))
        record = records["https://ex.com/img?id=1"]
        self.assertEqual(record.format, ImageFormat.AVIF)
        self.assertEqual(record.declared_type, "image/avif")
        self.assertEqual(record.source_type, SourceType.PICTURE)
        self.assertIn("https://ex.com/f.jpg", records)

    def test_media_marks_responsive(self):
        record = _scan('<picture><source media="(min-width: 800px)" srcset="/wide.jpg"></picture>')[0]
        self.assertTrue(record.is_responsive)

    def test_video_poster(self):
        records = _by_url(_scan('<video poster="/poster.jpg" width="320"><source src="/movie.mp4"></video>'))
        self.assertEqual(records["https://ex.com/poster.jpg"].source_type, SourceType.OTHER)
        self.assertNotIn("https://ex.com/movie.mp4", records)


class TestStyleHandlers(unittest.TestCase):
    def test_background_data_uri_rejected(self):
        self.assertEqual(_scan('<div style="background:url(data:image/png;base64,AAAA)"></div>'), [])

    def test_style_block_skips_fonts(self):
        html = """<style>
          @font-face { src: url(/f.woff2); }
          .hero { background: url("/hero.png"); }
        </style>"""
        records = _scan(html)
        self.assertEqual([r.url for r in records], ["https://ex.com/hero.png"])
        self.assertEqual(records[0].source_type, SourceType.BACKGROUND)


class TestLinkAndMeta(unittest.TestCase):
    def test_link_icons_and_sizes(self):
        html = """<head>
          <link rel="apple-touch-icon" sizes="180x180" href="/apple.png">
          <link rel="icon" href="/favicon">
          <link rel="stylesheet" href="/site.css">
        </head>"""
        records = _by_url(_scan(html))
        self.assertEqual(records["https://ex.com/apple.png"].width, 180)
        self.assertEqual(records["https://ex.com/apple.png"].source_type, SourceType.LINK)
        self.assertEqual(records["https://ex.com/favicon"].format, ImageFormat.UNKNOWN)
        self.assertNotIn("https://ex.com/site.css", records)

    def test_meta_image_keys_only(self):
        html = """<head>
          <meta property="og:image" content="https://cdn.ex.com/og.jpg">
          <meta name="twitter:image" content="/tw.png">
          <meta name="viewport" content="width=device-width">
          <meta name="description" content="/not-an-image.jpg">
        </head>"""
        records = _by_url(_scan(html))
        self.assertEqual(set(records), {"https://cdn.ex.com/og.jpg", "https://ex.com/tw.png"})
        self.assertTrue(all(r.source_type == SourceType.META for r in records.values()))


class TestInlineSvg(unittest.TestCase):
    HTML = '<body><svg viewBox="0 0 24 12"><title>Logo</title><svg><rect/></svg></svg></body>'

    def test_synthetic_url_and_dimensions(self):
        records = _scan(self.HTML, page_url="https://ex.com/page#top")
        self.assertEqual(len(records), 1)
        record = records[0]
        self.assertTrue(record.url.startswith("https://ex.com/page#svg-"))
        self.assertTrue(record.filename.endswith(".svg"))
        self.assertEqual((record.width, record.height), (24, 12))
        self.assertEqual(record.format, ImageFormat.SVG)
        self.assertEqual(record.source_type, SourceType.SVG)

    def test_identifier_stable_across_scans(self):
        first = _scan(self.HTML)[0].url
        second = _scan(self.HTML)[0].url
        self.assertEqual(first, second)

    def test_explicit_dimensions_win(self):
        record = _scan('<svg width="48" height="48" viewBox="0 0 24 24"></svg>')[0]
        self.assertEqual((record.width, record.height), (48, 48))


class TestCanvasIframeData(unittest.TestCase):
    def test_canvas_data_src(self):
        record = _scan('<canvas data-src="/c1.png" width="100" height="50"></canvas>')[0]
        self.assertEqual(record.source_type, SourceType.CANVAS)
        self.assertTrue(record.is_lazy_loaded)
        self.assertEqual((record.width, record.height), (100, 50))

    def test_iframe_keyword_match(self):
        html = """
          <iframe src="https://www.flickr.com/photos/abc/embed"></iframe>
          <iframe src="https://www.youtube.com/embed/xyz"></iframe>
        """
        records = _scan(html)
        self.assertEqual([r.url for r in records], ["https://www.flickr.com/photos/abc/embed"])
        self.assertEqual(records[0].source_type, SourceType.IFRAME)

    def test_malformed_iframe_src_skips_only_that_iframe(self):
        html = """
          <iframe src="https://[::1"></iframe>
          <iframe src="https://imgur.com/gallery/xyz"></iframe>
        """
        parser = ImageParser()
        records = _scan(html, parser=parser)
        self.assertEqual([r.url for r in records], ["https://imgur.com/gallery/xyz"])
        self.assertEqual(parser.last_stats["handler_errors"], 1)

    def test_data_attributes(self):
        html = '<div data-bg="/bg.jpg"></div><span data-srcset="/s1.jpg 1x, /s2.jpg 2x"></span>'
        records = _by_url(_scan(html))
        self.assertEqual(records["https://ex.com/bg.jpg"].source_type, SourceType.BACKGROUND)
        self.assertEqual(records["https://ex.com/s1.jpg"].source_type, SourceType.OTHER)
        self.assertIn("https://ex.com/s2.jpg", records)
        self.assertTrue(records["https://ex.com/bg.jpg"].is_lazy_loaded)


class TestJsonLdAndFaultIsolation(unittest.TestCase):
    def test_malformed_jsonld_does_not_stop_scan(self):
        html = """
          <script type="application/ld+json">{not json</script>
          <script type="application/ld+json">{"@type": "Article", "image": {"url": "/ld.jpg", "width": 1200, "height": 630}}</script>
          <img src="/a.png">
        """
        parser = ImageParser()
        records = _by_url(_scan(html, parser=parser))
        self.assertIn("https://ex.com/a.png", records)
        self.assertEqual(records["https://ex.com/ld.jpg"].source_type, SourceType.JSONLD)
        self.assertEqual(records["https://ex.com/ld.jpg"].width, 1200)
        self.assertEqual(parser.last_stats.get("rejected_malformed_jsonld"), 1)

    def test_failing_handler_isolated(self):
        parser = ImageParser()

        def boom(soup, ctx):
            raise RuntimeError("handler exploded")

        parser.handlers[0] = ("img", boom)
        records = _scan('<img src="/a.png"><div style="background:url(/b.png)"></div>', parser=parser)
        self.assertEqual([r.url for r in records], ["https://ex.com/b.png"])
        self.assertEqual(parser.last_stats["handler_errors"], 1)

    def test_empty_document(self):
        self.assertEqual(_scan(""), [])


if __name__ == "__main__":
    unittest.main()
