"""
設定と CLI 引数。既定値は環境変数で上書きできる。
環境変数の値もオプションと同じ検査を通し、不正なら argparse のエラー（exit 2）にする。
"""

import argparse
import os
from pathlib import Path

from mwdump_records.convert import DEFAULT_LOG_EVERY
from mwdump_records.encode.dispatcher import DEFAULT_FORMAT, FORMATS
from mwdump_records.util.open_dump import COMPRESSION_AUTO, COMPRESSIONS


def _env_str(key: str, default: str) -> str:
    v = os.environ.get(key)
    if v is None or not str(v).strip():
        return default
    return str(v).strip()


def _env_path(key: str, default: str | None) -> Path | None:
    v = os.environ.get(key)
    if v is None or not str(v).strip():
        return Path(default) if default else None
    return Path(v)


def _add_io_options(p: argparse.ArgumentParser) -> None:
    p.add_argument('input', help="ダンプファイル (.xml / .xml.bz2 / .xml.xz)。'-' なら stdin")
    # argparse は既定値を choices で検査しないため、parse_args で検査する
    p.add_argument(
        '--format',
        choices=FORMATS,
        default=_env_str('MWDUMP_FORMAT', DEFAULT_FORMAT),
        help=f'出力形式。既定: MWDUMP_FORMAT または {DEFAULT_FORMAT}',
    )
    p.add_argument(
        '--output',
        type=Path,
        default=_env_path('MWDUMP_OUTPUT', None),
        help='出力ファイル。既定: MWDUMP_OUTPUT、未設定なら stdout',
    )
    p.add_argument(
        '--compression',
        choices=COMPRESSIONS,
        default=COMPRESSION_AUTO,
        help='入力の圧縮形式。既定: auto（拡張子から判定）',
    )


def build_parser() -> argparse.ArgumentParser:
    """サブコマンド convert / find を持つパーサを作る。"""
    p = argparse.ArgumentParser(
        prog='mwdump_records',
        description='MediaWiki XML ダンプをページ単位のレコード (CBOR/JSONL/MessagePack/Bincode) に変換する',
    )
    sub = p.add_subparsers(dest='command')

    conv = sub.add_parser('convert', help='全ページを変換する')
    _add_io_options(conv)
    # 文字列の既定値は type=int で変換されるので、MWDUMP_LOG_EVERY もオプションと同じく検査される
    conv.add_argument(
        '--log-every',
        type=int,
        default=_env_str('MWDUMP_LOG_EVERY', str(DEFAULT_LOG_EVERY)),
        help=f'N ページごとに進捗を stderr に出す（0 で無効）。既定: MWDUMP_LOG_EVERY または {DEFAULT_LOG_EVERY}',
    )

    find = sub.add_parser('find', help='タイトルが一致するページを1件だけ出力する')
    _add_io_options(find)
    find.add_argument('title', help='探すページのタイトル（ダンプ上の表記そのまま）')
    return p


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """コマンドライン引数をパースする。"""
    p = build_parser()
    args = p.parse_args(argv)
    if args.command is not None and args.format not in FORMATS:
        p.error(
            f"MWDUMP_FORMAT: invalid choice: {args.format!r} (choose from {', '.join(FORMATS)})"
        )
    return args
