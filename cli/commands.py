"""
CLI命令定义（argparse）
"""
import argparse


def create_parser() -> argparse.ArgumentParser:
    """
    创建命令行参数解析器

    Returns:
        ArgumentParser 实例
    """
    parser = argparse.ArgumentParser(
        prog='extractor.py',
        description='网页图片提取器 (子命令模式)',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog='''
示例:
  # 提取页面中的图片（表格输出）
  python extractor.py extract https://example.com/

  # 多个页面，JSON 输出到文件，不补全元数据
  python extractor.py extract example.com example.org --json --output images.json --no-enrich

  # 查看单张图片的信息
  python extractor.py info https://example.com/a.png

  # 通过代理下载图片
  python extractor.py proxy https://example.com/a.png --output a.png

  # 启动 HTTP 服务
  python extractor.py serve --port 8080
        '''
    )

    # 创建子命令
    subparsers = parser.add_subparsers(dest='command', help='子命令', required=True)

    # ============================================================================
    # 子命令: extract - 提取页面图片
    # ============================================================================
    parser_extract = subparsers.add_parser('extract', help='提取一个或多个页面中的图片')
    parser_extract.add_argument('urls', type=str, nargs='+', help='页面 URL（没有协议时补 https://）')
    parser_extract.add_argument('--json', action='store_true', help='以 JSON 输出结果')
    parser_extract.add_argument('--output', '-o', type=str, default=None, help='把 JSON 结果写入文件')
    parser_extract.add_argument('--no-enrich', dest='enrich', action='store_false', default=None,
                                help='不探测图片大小 / MIME 类型')

    # ============================================================================
    # 子命令: info - 图片信息
    # ============================================================================
    parser_info = subparsers.add_parser('info', help='获取图片的格式、大小与 MIME 类型')
    parser_info.add_argument('url', type=str, help='图片 URL')

    # ============================================================================
    # 子命令: proxy - 经由代理下载图片
    # ============================================================================
    parser_proxy = subparsers.add_parser('proxy', help='经由图片代理把图片保存到文件')
    parser_proxy.add_argument('url', type=str, help='图片 URL')
    parser_proxy.add_argument('--output', '-o', type=str, required=True, help='输出文件路径')
    parser_proxy.add_argument('--referer', type=str, default=None, help='请求时携带的 Referer')

    # ============================================================================
    # 子命令: serve - HTTP 服务
    # ============================================================================
    parser_serve = subparsers.add_parser('serve', help='启动 HTTP 服务（提取 / 代理 / 信息接口）')
    parser_serve.add_argument('--host', type=str, default=None, help='监听地址（默认取配置）')
    parser_serve.add_argument('--port', type=int, default=None, help='监听端口（默认取配置）')

    return parser
