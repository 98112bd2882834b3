"""
変換パイプライン: バイト列 → XML イベント → Page → 選んだ形式で出力。
1ページを抽出したら直ちに書き出してから次のページを読む。
"""

from typing import BinaryIO, Optional

from mwdump_records.encode.dispatcher import EncodingDispatcher, get_encoder
from mwdump_records.extract.page_extractor import PageExtractor
from mwdump_records.util.log import ProgressReporter
from mwdump_records.xml_stream import DEFAULT_CHUNK_SIZE, iter_events

DEFAULT_LOG_EVERY = 10000


def convert(
    source: BinaryIO,
    sink: BinaryIO,
    fmt: str,
    *,
    log_every: Optional[int] = DEFAULT_LOG_EVERY,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
) -> int:
    """
    source の全ページを fmt 形式で sink に書き、書いたページ数を返す。
    エラー（DumpError）は途中で止めてそのまま送出する。書き終えたページはそのまま残る。
    log_every ページごとに進捗を stderr に出す（None / 0 なら出さない）。
    """
    dispatcher = EncodingDispatcher(get_encoder(fmt), sink)
    extractor = PageExtractor(iter_events(source, chunk_size))
    with ProgressReporter(dispatcher.format, log_every) as progress:
        for page in extractor:
            dispatcher.write(page)
            progress.update(dispatcher.records_written, extractor.offset)
        progress.done(dispatcher.records_written, extractor.offset)
    return dispatcher.records_written
