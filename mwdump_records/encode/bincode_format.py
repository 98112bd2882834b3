"""
Bincode (1.x 既定設定) 形式。固定スキーマのバイナリで、フィールド名は持たない。

- 整数は固定長リトルエンディアン（namespace: i32、id 類: u64）
- 文字列・配列は u64 の長さ + 中身（文字列は UTF-8）
- Option は u8 の 0/1 + 値、列挙型は u32 の variant 番号 + 値、bool は u8

スキーマ（フィールド順はレコードモデルに合わせる）:
    Page     = title, namespace, id, redirect_target?, restrictions?, revisions[]
    Revision = id, parent_id?, timestamp, contributor, comment?, model?, format?, text?, sha1?, minor
    Contributor = 0 User{username, id} | 1 Anonymous{ip} | 2 Deleted
    comment / text = Option<0 Visible(String) | 1 Deleted>
"""

import struct
from typing import Iterator, Optional

from mwdump_records.model import (
    DELETED,
    AnonymousContributor,
    Contributor,
    Page,
    Redactable,
    Revision,
    UserContributor,
)

_U8 = struct.Struct('<B')
_U32 = struct.Struct('<I')
_I32 = struct.Struct('<i')
_U64 = struct.Struct('<Q')

CONTRIBUTOR_USER = 0
CONTRIBUTOR_ANONYMOUS = 1
CONTRIBUTOR_DELETED = 2

REDACTABLE_VISIBLE = 0
REDACTABLE_DELETED = 1


class _Writer:
    def __init__(self) -> None:
        self.parts: list[bytes] = []

    def pack(self, fmt: struct.Struct, value: int, what: str) -> None:
        try:
            self.parts.append(fmt.pack(value))
        except struct.error as e:
            raise ValueError(f"bincode: {what}={value!r} does not fit: {e}") from e

    def u8(self, value: int) -> None:
        self.parts.append(_U8.pack(value))

    def string(self, value: str) -> None:
        raw = value.encode('utf-8')
        self.parts.append(_U64.pack(len(raw)))
        self.parts.append(raw)

    def option_string(self, value: Optional[str]) -> None:
        if value is None:
            self.u8(0)
        else:
            self.u8(1)
            self.string(value)

    def option_u64(self, value: Optional[int], what: str) -> None:
        if value is None:
            self.u8(0)
        else:
            self.u8(1)
            self.pack(_U64, value, what)

    def redactable(self, value: Redactable) -> None:
        if value is None:
            self.u8(0)
            return
        self.u8(1)
        if value is DELETED:
            self.parts.append(_U32.pack(REDACTABLE_DELETED))
        else:
            self.parts.append(_U32.pack(REDACTABLE_VISIBLE))
            self.string(value)

    def contributor(self, value: Contributor) -> None:
        if isinstance(value, UserContributor):
            self.parts.append(_U32.pack(CONTRIBUTOR_USER))
            self.string(value.username)
            self.pack(_U64, value.id, 'contributor.id')
        elif isinstance(value, AnonymousContributor):
            self.parts.append(_U32.pack(CONTRIBUTOR_ANONYMOUS))
            self.string(value.ip)
        else:
            self.parts.append(_U32.pack(CONTRIBUTOR_DELETED))

    def getvalue(self) -> bytes:
        return b''.join(self.parts)


class _Reader:
    def __init__(self, data: bytes) -> None:
        self.data = data
        self.pos = 0

    def at_end(self) -> bool:
        return self.pos >= len(self.data)

    def unpack(self, fmt: struct.Struct) -> int:
        end = self.pos + fmt.size
        if end > len(self.data):
            raise ValueError(f"bincode: unexpected end of data at byte {self.pos}")
        (value,) = fmt.unpack_from(self.data, self.pos)
        self.pos = end
        return value

    def string(self) -> str:
        n = self.unpack(_U64)
        end = self.pos + n
        if end > len(self.data):
            raise ValueError(f"bincode: string of {n} bytes runs past end of data at byte {self.pos}")
        value = self.data[self.pos:end].decode('utf-8')
        self.pos = end
        return value

    def flag(self) -> bool:
        tag = self.unpack(_U8)
        if tag not in (0, 1):
            raise ValueError(f"bincode: invalid option/bool tag {tag} at byte {self.pos - 1}")
        return tag == 1

    def option_string(self) -> Optional[str]:
        return self.string() if self.flag() else None

    def option_u64(self) -> Optional[int]:
        return self.unpack(_U64) if self.flag() else None

    def redactable(self) -> Redactable:
        if not self.flag():
            return None
        variant = self.unpack(_U32)
        if variant == REDACTABLE_VISIBLE:
            return self.string()
        if variant == REDACTABLE_DELETED:
            return DELETED
        raise ValueError(f"bincode: invalid comment/text variant {variant}")

    def contributor(self) -> Contributor:
        variant = self.unpack(_U32)
        if variant == CONTRIBUTOR_USER:
            username = self.string()
            return UserContributor(username=username, id=self.unpack(_U64))
        if variant == CONTRIBUTOR_ANONYMOUS:
            return AnonymousContributor(ip=self.string())
        if variant == CONTRIBUTOR_DELETED:
            return DELETED
        raise ValueError(f"bincode: invalid contributor variant {variant}")


def _write_revision(w: _Writer, rev: Revision) -> None:
    w.pack(_U64, rev.id, 'revision.id')
    w.option_u64(rev.parent_id, 'revision.parent_id')
    w.string(rev.timestamp)
    w.contributor(rev.contributor)
    w.redactable(rev.comment)
    w.option_string(rev.model)
    w.option_string(rev.format)
    w.redactable(rev.text)
    w.option_string(rev.sha1)
    w.u8(1 if rev.minor else 0)


def _read_revision(r: _Reader) -> Revision:
    rev_id = r.unpack(_U64)
    parent_id = r.option_u64()
    timestamp = r.string()
    contributor = r.contributor()
    comment = r.redactable()
    model = r.option_string()
    fmt = r.option_string()
    text = r.redactable()
    sha1 = r.option_string()
    minor = r.flag()
    return Revision(
        id=rev_id,
        parent_id=parent_id,
        timestamp=timestamp,
        contributor=contributor,
        comment=comment,
        model=model,
        format=fmt,
        text=text,
        sha1=sha1,
        minor=minor,
    )


class BincodeEncoder:
    name = 'bincode'
    extension = '.bincode'

    def encode(self, page: Page) -> bytes:
        w = _Writer()
        w.string(page.title)
        w.pack(_I32, page.namespace, 'namespace')
        w.pack(_U64, page.id, 'id')
        w.option_string(page.redirect_target)
        w.option_string(page.restrictions)
        w.parts.append(_U64.pack(len(page.revisions)))
        for rev in page.revisions:
            _write_revision(w, rev)
        return w.getvalue()

    def decode_stream(self, data: bytes) -> Iterator[Page]:
        r = _Reader(data)
        while not r.at_end():
            title = r.string()
            namespace = r.unpack(_I32)
            page_id = r.unpack(_U64)
            redirect_target = r.option_string()
            restrictions = r.option_string()
            count = r.unpack(_U64)
            revisions = tuple(_read_revision(r) for _ in range(count))
            yield Page(
                title=title,
                namespace=namespace,
                id=page_id,
                redirect_target=redirect_target,
                restrictions=restrictions,
                revisions=revisions,
            )
