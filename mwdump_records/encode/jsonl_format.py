"""
JSON Lines 形式。1ページ1行、各行は改行で終わる。
"""

import json
from typing import Iterator

from mwdump_records.model import Page, page_from_dict, page_to_dict


class JsonlEncoder:
    name = 'jsonl'
    extension = '.jsonl'

    def encode(self, page: Page) -> bytes:
        # 本文中の改行は JSON 文字列内で \n にエスケープされるので、1レコード1行が保たれる
        return (json.dumps(page_to_dict(page), ensure_ascii=False) + '\n').encode('utf-8')

    def decode_stream(self, data: bytes) -> Iterator[Page]:
        for line in data.decode('utf-8').split('\n'):
            if line:
                yield page_from_dict(json.loads(line))
