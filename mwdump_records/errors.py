"""
変換処理のエラー分類。いずれも致命的で、その場で回復せずに呼び出し元（CLI）まで伝播させる。
"""

from typing import Optional


class DumpError(Exception):
    """変換処理で発生するエラーの基底クラス。"""


def _where(page_id: Optional[int], title: Optional[str], offset: Optional[int]) -> str:
    """エラーメッセージ用に「どのページか・入力のどのあたりか」を組み立てる。"""
    parts = []
    if page_id is not None:
        parts.append(f"page id={page_id}")
    if title is not None:
        parts.append(f"title={title!r}")
    if offset is not None:
        parts.append(f"near byte {offset}")
    return ", ".join(parts) if parts else "before any page"


class MalformedXml(DumpError):
    """XML パーサが構文エラーを報告した。"""

    def __init__(
        self,
        message: str,
        *,
        line: Optional[int] = None,
        column: Optional[int] = None,
        offset: Optional[int] = None,
    ) -> None:
        self.message = message
        self.line = line
        self.column = column
        self.offset = offset
        where = []
        if line is not None:
            where.append(f"line {line}, column {column}")
        if offset is not None:
            where.append(f"near byte {offset}")
        suffix = f" ({'; '.join(where)})" if where else ""
        super().__init__(f"malformed XML: {message}{suffix}")


class TruncatedDump(DumpError):
    """page / revision が閉じられる前に入力が終わった。"""

    def __init__(
        self,
        *,
        page_id: Optional[int] = None,
        title: Optional[str] = None,
        offset: Optional[int] = None,
        open_element: Optional[str] = None,
        reason: Optional[str] = None,
    ) -> None:
        self.page_id = page_id
        self.title = title
        self.offset = offset
        self.open_element = open_element
        inside = f" inside <{open_element}>" if open_element else ""
        detail = f": {reason}" if reason else ""
        super().__init__(
            f"dump ended unexpectedly{inside}{detail} ({_where(page_id, title, offset)})"
        )


class UnreadableInput(DumpError):
    """入力の読み込み（解凍を含む）に失敗した。圧縮データの破損など。"""

    def __init__(self, message: str, *, offset: Optional[int] = None) -> None:
        self.message = message
        self.offset = offset
        where = f" (after {offset} decompressed bytes)" if offset is not None else ""
        super().__init__(f"cannot read input: {message}{where}")


class MalformedField(DumpError):
    """数値であるべきフィールドが数値でない、または必須フィールドが欠けている。"""

    def __init__(
        self,
        field: str,
        value: Optional[str] = None,
        *,
        page_id: Optional[int] = None,
        title: Optional[str] = None,
        offset: Optional[int] = None,
        reason: Optional[str] = None,
    ) -> None:
        self.field = field
        self.value = value
        self.page_id = page_id
        self.title = title
        self.offset = offset
        if reason is None:
            reason = f"expected a non-negative integer, got {value!r}"
        super().__init__(
            f"malformed field <{field}>: {reason} ({_where(page_id, title, offset)})"
        )


class SinkWriteFailure(DumpError):
    """出力先への書き込みに失敗した。部分書き込みの重複を避けるため再試行しない。"""

    def __init__(self, records_written: int, cause: BaseException) -> None:
        self.records_written = records_written
        self.cause = cause
        super().__init__(
            f"failed to write record #{records_written + 1} to output: {cause}"
        )
