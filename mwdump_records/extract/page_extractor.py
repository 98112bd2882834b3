"""
XML イベント列からページを1件ずつ組み立てる状態機械。

状態は Mode で、組み立て中のページ・リビジョン・投稿者はスタック（_stack）に積む。
入力終端でスタックが空でなければ途中切れ (TruncatedDump) と判定する。
未知の要素はサブツリーごと読み飛ばす（将来のダンプ形式で増えた要素に対応するため）。
"""

import enum
import re
from dataclasses import dataclass, field
from typing import BinaryIO, Iterable, Iterator, Optional, Union

from mwdump_records.errors import MalformedField, TruncatedDump
from mwdump_records.model import (
    DELETED,
    AnonymousContributor,
    Contributor,
    Page,
    Redactable,
    Revision,
    UserContributor,
)
from mwdump_records.xml_stream import DEFAULT_CHUNK_SIZE, END, EOF, START, TEXT, XmlEvent, iter_events


class Mode(enum.Enum):
    OUTSIDE = 'outside'
    IN_PAGE = 'in_page'
    IN_REVISION = 'in_revision'
    IN_CONTRIBUTOR = 'in_contributor'
    CAPTURING_TEXT = 'capturing_text'
    SKIPPING = 'skipping'


_UNSIGNED = re.compile(r'[0-9]+')
_SIGNED = re.compile(r'-?[0-9]+')
# id 類は u64、namespace は i32 に収まること（どの出力形式でも同じ値を表せる範囲）
_UNSIGNED_MAX = 2 ** 64 - 1
_SIGNED_MIN = -(2 ** 31)
_SIGNED_MAX = 2 ** 31 - 1


def _is_deleted(attrs: dict) -> bool:
    """MediaWiki は秘匿された要素に deleted="deleted" を付ける。"""
    return 'deleted' in attrs


@dataclass
class PageBuilder:
    title: Optional[str] = None
    namespace: Optional[int] = None
    id: Optional[int] = None
    redirect_target: Optional[str] = None
    restrictions: Optional[str] = None
    revisions: list = field(default_factory=list)


@dataclass
class RevisionBuilder:
    id: Optional[int] = None
    parent_id: Optional[int] = None
    timestamp: Optional[str] = None
    contributor: Optional[Contributor] = None
    comment: Redactable = None
    model: Optional[str] = None
    format: Optional[str] = None
    text: Redactable = None
    sha1: Optional[str] = None
    minor: bool = False


@dataclass
class ContributorBuilder:
    username: Optional[str] = None
    id: Optional[int] = None
    ip: Optional[str] = None
    deleted: bool = False


Builder = Union[PageBuilder, RevisionBuilder, ContributorBuilder]

# 葉要素名 → (builder の属性名, 数値の種類)。数値の種類 None は文字列のまま格納する。
_PAGE_LEAVES = {
    'title': ('title', None),
    'ns': ('namespace', 'signed'),
    'id': ('id', 'unsigned'),
    'restrictions': ('restrictions', None),
}
_REVISION_LEAVES = {
    'id': ('id', 'unsigned'),
    'parentid': ('parent_id', 'unsigned'),
    'timestamp': ('timestamp', None),
    'comment': ('comment', None),
    'model': ('model', None),
    'format': ('format', None),
    'text': ('text', None),
    'sha1': ('sha1', None),
}
_CONTRIBUTOR_LEAVES = {
    'username': ('username', None),
    'id': ('id', 'unsigned'),
    'ip': ('ip', None),
}
# deleted 属性が付いたら本文を読まずに DELETED を入れる要素
_REDACTABLE = frozenset({'comment', 'text'})

_LEAVES_BY_BUILDER = {
    PageBuilder: _PAGE_LEAVES,
    RevisionBuilder: _REVISION_LEAVES,
    ContributorBuilder: _CONTRIBUTOR_LEAVES,
}
_MODE_BY_BUILDER = {
    PageBuilder: Mode.IN_PAGE,
    RevisionBuilder: Mode.IN_REVISION,
    ContributorBuilder: Mode.IN_CONTRIBUTOR,
}
_ELEMENT_BY_BUILDER = {
    PageBuilder: 'page',
    RevisionBuilder: 'revision',
    ContributorBuilder: 'contributor',
}


class PageExtractor:
    """
    XmlEvent の列を消費して Page を遅延生成する。イベント列を消費するため再利用はできない。

    >>> for page in PageExtractor(iter_events(stream)):
    ...     handle(page)
    """

    def __init__(self, events: Iterable[XmlEvent]) -> None:
        self._events = iter(events)
        self._mode = Mode.OUTSIDE
        self._stack: list[Builder] = []
        self._capture_name: Optional[str] = None
        self._capture_chunks: list[str] = []
        # CAPTURING_TEXT 中に現れた子要素の深さ
        self._capture_depth = 0
        self._skip_depth = 0
        self._offset = 0
        self._last_page_id: Optional[int] = None
        self._last_title: Optional[str] = None

    @property
    def mode(self) -> Mode:
        return self._mode

    @property
    def offset(self) -> int:
        """直近に処理したイベントの入力バイト位置。"""
        return self._offset

    def __iter__(self) -> Iterator[Page]:
        return self.pages()

    def pages(self) -> Iterator[Page]:
        for event in self._events:
            self._offset = event.offset
            if event.kind == EOF:
                break
            page = self._handle(event)
            if page is not None:
                yield page
        if self._mode is not Mode.OUTSIDE:
            page_id, title = self._context()
            raise TruncatedDump(
                page_id=page_id,
                title=title,
                offset=self._offset,
                open_element=self._open_element(),
            )

    # ---- ディスパッチ ----

    def _handle(self, event: XmlEvent) -> Optional[Page]:
        mode = self._mode
        if mode is Mode.CAPTURING_TEXT:
            self._on_capture(event)
        elif mode is Mode.SKIPPING:
            self._on_skip(event)
        elif mode is Mode.OUTSIDE:
            self._on_outside(event)
        elif mode is Mode.IN_PAGE:
            return self._on_page(event)
        elif mode is Mode.IN_REVISION:
            self._on_revision(event)
        elif mode is Mode.IN_CONTRIBUTOR:
            self._on_contributor(event)
        return None

    def _on_outside(self, event: XmlEvent) -> None:
        if event.kind != START:
            return
        if event.name == 'page':
            self._push(PageBuilder())
        elif event.name != 'mediawiki':
            # siteinfo など
            self._begin_skip()

    def _on_page(self, event: XmlEvent) -> Optional[Page]:
        page = self._stack[-1]
        if event.kind == START:
            if event.name == 'revision':
                self._push(RevisionBuilder())
            elif event.name == 'redirect':
                # 転送先は子テキストではなく title 属性
                page.redirect_target = event.attrs.get('title', '')
                self._begin_skip()
            elif event.name in _PAGE_LEAVES:
                self._begin_capture(event.name)
            else:
                self._begin_skip()
        elif event.kind == END and event.name == 'page':
            self._stack.pop()
            self._mode = Mode.OUTSIDE
            return self._finish_page(page)
        return None

    def _on_revision(self, event: XmlEvent) -> None:
        rev = self._stack[-1]
        if event.kind == START:
            if event.name == 'contributor':
                self._push(ContributorBuilder(deleted=_is_deleted(event.attrs)))
            elif event.name == 'minor':
                rev.minor = True
                self._begin_skip()
            elif event.name in _REDACTABLE and _is_deleted(event.attrs):
                setattr(rev, event.name, DELETED)
                self._begin_skip()
            elif event.name in _REVISION_LEAVES:
                self._begin_capture(event.name)
            else:
                self._begin_skip()
        elif event.kind == END and event.name == 'revision':
            self._stack.pop()
            page = self._stack[-1]
            page.revisions.append(self._finish_revision(rev))
            self._mode = Mode.IN_PAGE

    def _on_contributor(self, event: XmlEvent) -> None:
        if event.kind == START:
            if event.name in _CONTRIBUTOR_LEAVES:
                self._begin_capture(event.name)
            else:
                self._begin_skip()
        elif event.kind == END and event.name == 'contributor':
            contributor = self._stack.pop()
            rev = self._stack[-1]
            rev.contributor = self._finish_contributor(contributor)
            self._mode = Mode.IN_REVISION

    def _on_capture(self, event: XmlEvent) -> None:
        if event.kind == START:
            self._capture_depth += 1
        elif event.kind == TEXT:
            if self._capture_depth == 0:
                self._capture_chunks.append(event.text or '')
        elif event.kind == END:
            if self._capture_depth > 0:
                self._capture_depth -= 1
                return
            value = ''.join(self._capture_chunks)
            name = self._capture_name
            self._capture_name = None
            self._capture_chunks = []
            self._mode = self._mode_for_stack()
            self._assign(name, value)

    def _on_skip(self, event: XmlEvent) -> None:
        if event.kind == START:
            self._skip_depth += 1
        elif event.kind == END:
            self._skip_depth -= 1
            if self._skip_depth == 0:
                self._mode = self._mode_for_stack()

    # ---- 状態遷移の補助 ----

    def _push(self, builder: Builder) -> None:
        self._stack.append(builder)
        self._mode = _MODE_BY_BUILDER[type(builder)]

    def _begin_capture(self, name: str) -> None:
        self._capture_name = name
        self._capture_chunks = []
        self._capture_depth = 0
        self._mode = Mode.CAPTURING_TEXT

    def _begin_skip(self) -> None:
        self._skip_depth = 1
        self._mode = Mode.SKIPPING

    def _mode_for_stack(self) -> Mode:
        if not self._stack:
            return Mode.OUTSIDE
        return _MODE_BY_BUILDER[type(self._stack[-1])]

    def _open_element(self) -> Optional[str]:
        if self._mode is Mode.CAPTURING_TEXT:
            return self._capture_name
        if not self._stack:
            return None
        return _ELEMENT_BY_BUILDER[type(self._stack[-1])]

    def _context(self) -> tuple[Optional[int], Optional[str]]:
        """エラー報告用: 組み立て中のページ、なければ直前に完成したページの id / title。"""
        if self._stack:
            page = self._stack[0]
            if page.id is not None or page.title is not None:
                return page.id, page.title
        return self._last_page_id, self._last_title

    # ---- 値の格納と確定 ----

    def _assign(self, name: str, value: str) -> None:
        builder = self._stack[-1]
        attr, kind = _LEAVES_BY_BUILDER[type(builder)][name]
        if kind is not None:
            setattr(builder, attr, self._parse_int(name, value, signed=(kind == 'signed')))
        else:
            setattr(builder, attr, value)

    def _parse_int(self, name: str, value: str, *, signed: bool) -> int:
        pattern = _SIGNED if signed else _UNSIGNED
        if pattern.fullmatch(value) is None:
            raise self._bad_number(
                name, value, f"expected {'an integer' if signed else 'a non-negative integer'}, got {value!r}"
            )
        low, high = (_SIGNED_MIN, _SIGNED_MAX) if signed else (0, _UNSIGNED_MAX)
        # 桁数が多すぎる文字列は int() に渡さない（変換上限の ValueError を避ける）
        n = int(value) if len(value) <= 21 else None
        if n is None or not low <= n <= high:
            raise self._bad_number(name, value, f"{value} is out of range [{low}, {high}]")
        return n

    def _bad_number(self, name: str, value: str, reason: str) -> MalformedField:
        page_id, title = self._context()
        return MalformedField(
            self._field_path(name),
            value,
            page_id=page_id,
            title=title,
            offset=self._offset,
            reason=reason,
        )

    def _field_path(self, name: str) -> str:
        """contributor/id のように、どの id かが分かる名前にする。"""
        elements = [_ELEMENT_BY_BUILDER[type(b)] for b in self._stack]
        return '/'.join(elements[1:] + [name]) if len(elements) > 1 else name

    def _missing(self, field_name: str, page_id: Optional[int], title: Optional[str]) -> MalformedField:
        return MalformedField(
            field_name,
            page_id=page_id,
            title=title,
            offset=self._offset,
            reason='required element is missing',
        )

    def _finish_contributor(self, c: ContributorBuilder) -> Contributor:
        page_id, title = self._context()
        if c.username is not None:
            if c.id is None:
                raise self._missing('revision/contributor/id', page_id, title)
            return UserContributor(username=c.username, id=c.id)
        if c.ip is not None:
            return AnonymousContributor(ip=c.ip)
        if c.deleted:
            return DELETED
        raise MalformedField(
            'revision/contributor',
            page_id=page_id,
            title=title,
            offset=self._offset,
            reason='neither username nor ip, and not marked deleted',
        )

    def _finish_revision(self, r: RevisionBuilder) -> Revision:
        page_id, title = self._context()
        if r.id is None:
            raise self._missing('revision/id', page_id, title)
        if r.timestamp is None:
            raise self._missing('revision/timestamp', page_id, title)
        if r.contributor is None:
            raise self._missing('revision/contributor', page_id, title)
        return Revision(
            id=r.id,
            parent_id=r.parent_id,
            timestamp=r.timestamp,
            contributor=r.contributor,
            comment=r.comment,
            model=r.model,
            format=r.format,
            text=r.text,
            sha1=r.sha1,
            minor=r.minor,
        )

    def _finish_page(self, p: PageBuilder) -> Page:
        if p.title is None:
            raise self._missing('title', p.id, p.title)
        if not p.title:
            raise MalformedField(
                'title',
                '',
                page_id=p.id,
                title=p.title,
                offset=self._offset,
                reason='must not be empty',
            )
        if p.id is None:
            raise self._missing('id', p.id, p.title)
        self._last_page_id = p.id
        self._last_title = p.title
        return Page(
            title=p.title,
            # ns を持たない古い形式のダンプは標準名前空間とみなす
            namespace=p.namespace if p.namespace is not None else 0,
            id=p.id,
            redirect_target=p.redirect_target,
            restrictions=p.restrictions,
            revisions=tuple(p.revisions),
        )


def extract_pages(stream: BinaryIO, chunk_size: int = DEFAULT_CHUNK_SIZE) -> Iterator[Page]:
    """解凍済みバイトストリームから Page を yield する。"""
    return PageExtractor(iter_events(stream, chunk_size)).pages()
