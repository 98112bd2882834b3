"""
ダンプから指定タイトルのページを1件探す。見つかった時点で読み込みをやめる。
"""

from typing import BinaryIO, Optional

from mwdump_records.extract.page_extractor import extract_pages
from mwdump_records.model import Page


def find_page(stream: BinaryIO, title: str) -> Optional[Page]:
    """
    stream を先頭から読み、title が完全一致する最初のページを返す。無ければ None。
    タイトルは正規化せずに比較する（ダンプ上の表記そのまま。例: "Main Page"）。
    """
    pages = extract_pages(stream)
    try:
        for page in pages:
            if page.title == title:
                return page
    finally:
        pages.close()
    return None
