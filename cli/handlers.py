"""
CLI命令处理函数
"""
import json
from pathlib import Path
from typing import Any, Dict, List, Optional
from loguru import logger
from tqdm import tqdm

from config import Config, config as default_config
from core.errors import ExtractorError
from core.rate_limiter import RateLimiter
from gateway.proxy import ImageProxy
from gateway.server import EMPTY_RESULT_MESSAGE, run_server
from spiders.image_spider import ImageSpider


def _format_size(size: Optional[int]) -> str:
    if size is None:
        return "-"
    if size < 1024:
        return f"{size} B"
    if size < 1024 * 1024:
        return f"{size / 1024:.1f} KB"
    return f"{size / (1024 * 1024):.1f} MB"


def print_images(page_url: str, images: List[Dict[str, Any]]):
    """以表格形式输出一页的提取结果"""
    print("\n" + "=" * 60)
    print(f"🖼️  {page_url}")
    print("=" * 60)
    if not images:
        print(f"  {EMPTY_RESULT_MESSAGE}")
        return
    for index, image in enumerate(images, 1):
        dims = "-"
        if image.get("width") and image.get("height"):
            dims = f"{image['width']}x{image['height']}"
        print(
            f"  {index:>3}. [{image['sourceType']:<10}] {image['format']:<7} "
            f"{dims:>11} {_format_size(image.get('size')):>9}  {image['url']}"
        )


async def handle_extract(args, cfg: Optional[Config] = None) -> int:
    """
    处理 extract 子命令

    多个页面共享同一个限速器与会话；单个页面失败不影响其他页面。

    Returns:
        退出码（有页面失败时为 1）
    """
    cfg = cfg or default_config
    print(f"\n📌 命令: 提取图片 ({len(args.urls)} 个页面)")

    results = []
    failed = 0
    limiter = RateLimiter.from_config(cfg.rate_limit)

    async with ImageSpider(cfg, limiter) as spider:
        urls = tqdm(args.urls, desc="提取进度") if len(args.urls) > 1 else args.urls
        for url in urls:
            try:
                images = await spider.extract(url, enrich=args.enrich)
            except ExtractorError as e:
                failed += 1
                logger.error(f"❌ 提取失败 {url}: {e}")
                results.append({"url": url, "error": str(e), "images": []})
                continue

            entry = {"url": url, "images": [image.to_dict() for image in images]}
            if not images:
                entry["message"] = EMPTY_RESULT_MESSAGE
            results.append(entry)

        if args.output:
            output = Path(args.output)
            output.parent.mkdir(parents=True, exist_ok=True)
            output.write_text(json.dumps(results, ensure_ascii=False, indent=2), encoding="utf-8")
            logger.success(f"💾 结果已保存: {output}")

        if args.json:
            print(json.dumps(results, ensure_ascii=False, indent=2))
        else:
            for entry in results:
                if "error" in entry:
                    print(f"\n❌ {entry['url']}: {entry['error']}")
                else:
                    print_images(entry["url"], entry["images"])
            print_statistics(spider)

    return 1 if failed else 0


async def handle_info(args, cfg: Optional[Config] = None) -> int:
    """处理 info 子命令"""
    cfg = cfg or default_config
    async with ImageProxy(cfg) as proxy:
        try:
            info = await proxy.info(args.url)
        except ExtractorError as e:
            logger.error(f"❌ 获取图片信息失败: {e}")
            return 1
    print(json.dumps(info.to_dict(), ensure_ascii=False, indent=2))
    return 0


async def handle_proxy(args, cfg: Optional[Config] = None) -> int:
    """处理 proxy 子命令：流式写入文件"""
    cfg = cfg or default_config
    output = Path(args.output)
    output.parent.mkdir(parents=True, exist_ok=True)

    async with ImageProxy(cfg) as proxy:
        try:
            async with proxy.open(args.url, referer=args.referer) as image:
                with open(output, "wb") as f, tqdm(
                    total=image.content_length, unit="B", unit_scale=True, desc=output.name
                ) as progress:
                    async for chunk in image.iter_chunks():
                        f.write(chunk)
                        progress.update(len(chunk))
        except ExtractorError as e:
            logger.error(f"❌ 代理下载失败: {e}")
            return 1

    logger.success(f"✅ 已保存 {image.bytes_relayed} 字节 ({image.content_type}) -> {output}")
    return 0


def handle_serve(args, cfg: Optional[Config] = None) -> int:
    """处理 serve 子命令（阻塞直到退出）"""
    cfg = cfg or default_config
    run_server(cfg, host=args.host, port=args.port)
    return 0


def print_statistics(spider):
    """输出统计信息"""
    stats = spider.get_statistics()
    scan = stats.get("scan", {})
    print("\n" + "=" * 60)
    print("📊 提取统计:")
    print(f"  页面数: {stats['pages_fetched']}")
    print(f"  候选数: {scan.get('candidates', 0)}")
    print(f"  发现图片: {stats['images_found']}")
    print(f"  去重后: {stats['images_unique']}")
    dedup = stats.get("dedup", {})
    print(f"  重复URL: {dedup.get('duplicates_found', 0)} ({dedup.get('duplicate_rate', 0.0):.1%})")
    print(f"  补全元数据: {stats['images_enriched']}")
    print(f"  限速等待: {stats['rate_limit']['delayed']}")
    print("=" * 60)
