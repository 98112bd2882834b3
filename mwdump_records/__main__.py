"""
メインエントリポイント: サブコマンド convert / find。

    python -m mwdump_records convert jawiki-latest-pages-articles.xml.bz2 --format jsonl --output pages.jsonl
    python -m mwdump_records find dump.xml "Main Page" --format jsonl
"""

import sys
from contextlib import contextmanager
from pathlib import Path
from typing import BinaryIO, Iterator, Optional

from mwdump_records.convert import convert
from mwdump_records.encode.dispatcher import EncodingDispatcher, get_encoder
from mwdump_records.errors import DumpError
from mwdump_records.extract.find_page import find_page
from mwdump_records.util import config
from mwdump_records.util.log import format_elapsed, log, Timer
from mwdump_records.util.open_dump import open_dump


@contextmanager
def _open_sink(output: Optional[Path]) -> Iterator[BinaryIO]:
    """出力先を開く。未指定なら stdout（バイナリ）。"""
    if output is None:
        yield sys.stdout.buffer
        return
    output.parent.mkdir(parents=True, exist_ok=True)
    with open(output, 'wb') as f:
        yield f


def main_convert(args) -> None:
    """全ページを変換して出力する。"""
    # 形式は起動時に確定させる（不正なら読み込み前に止める）
    get_encoder(args.format)
    log(f'convert: {args.input} -> {args.output or "<stdout>"} ({args.format})')
    with Timer() as total_timer:
        with open_dump(args.input, args.compression) as source, _open_sink(args.output) as sink:
            count = convert(source, sink, args.format, log_every=args.log_every)
    log(f'  pages: {count}')
    log(f'  実行時間: {format_elapsed(total_timer.elapsed)} ({total_timer.elapsed:.1f}s)')


def main_find(args) -> None:
    """タイトルが一致する最初のページを出力する。見つからなければ exit(1)。"""
    encoder = get_encoder(args.format)
    with open_dump(args.input, args.compression) as source:
        page = find_page(source, args.title)
    if page is None:
        log(f'find: no page titled {args.title!r}')
        sys.exit(1)
    with _open_sink(args.output) as sink:
        EncodingDispatcher(encoder, sink).write(page)
    log(f'find: page id={page.id}, revisions={len(page.revisions)}')


def main() -> None:
    args = config.parse_args()
    if args.command is None:
        config.build_parser().print_usage(sys.stderr)
        log('subcommands: convert, find')
        sys.exit(1)
    try:
        if args.command == 'convert':
            main_convert(args)
        else:
            main_find(args)
    except (DumpError, FileNotFoundError, ValueError) as e:
        log(f'error: {e}')
        sys.exit(1)
    sys.exit(0)


if __name__ == '__main__':
    main()
