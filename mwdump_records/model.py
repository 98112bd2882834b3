"""
ページ・リビジョンのレコード表現と、全出力形式で共通のフィールド射影。

欠落は None、秘匿（deleted 属性）は DELETED で表し、空文字列とは区別する。
"""

from dataclasses import dataclass, field
from typing import Any, Optional, Union


class Deleted:
    """ダンプ側で秘匿された値（<comment deleted="deleted" /> など）を表すマーカー。"""

    _instance: Optional["Deleted"] = None

    def __new__(cls) -> "Deleted":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return 'DELETED'

    def __reduce__(self) -> str:
        return 'DELETED'


DELETED = Deleted()


@dataclass(frozen=True)
class UserContributor:
    """ログインユーザーによる編集。"""
    username: str
    id: int


@dataclass(frozen=True)
class AnonymousContributor:
    """IP 編集。IP は検証・正規化せずにそのまま保持する。"""
    ip: str


Contributor = Union[UserContributor, AnonymousContributor, Deleted]
# 欠落 (None)・秘匿 (DELETED)・本文 (str) の3通り
Redactable = Union[None, Deleted, str]


@dataclass(frozen=True)
class Revision:
    id: int
    timestamp: str
    contributor: Contributor
    parent_id: Optional[int] = None
    comment: Redactable = None
    model: Optional[str] = None
    format: Optional[str] = None
    text: Redactable = None
    sha1: Optional[str] = None
    minor: bool = False


@dataclass(frozen=True)
class Page:
    title: str
    namespace: int
    id: int
    redirect_target: Optional[str] = None
    restrictions: Optional[str] = None
    revisions: tuple[Revision, ...] = field(default_factory=tuple)


# 出力時のキー順（レコードモデルのフィールド順）
PAGE_FIELDS = ('title', 'namespace', 'id', 'redirect_target', 'restrictions', 'revisions')
REVISION_FIELDS = (
    'id', 'parent_id', 'timestamp', 'contributor', 'comment',
    'model', 'format', 'text', 'sha1', 'minor',
)

_DELETED_MAP = {'deleted': True}


def _is_deleted_map(value: Any) -> bool:
    return isinstance(value, dict) and value.get('deleted') is True and len(value) == 1


def _redactable_to_plain(value: Redactable) -> Any:
    if value is DELETED:
        return dict(_DELETED_MAP)
    return value


def _redactable_from_plain(value: Any) -> Redactable:
    if _is_deleted_map(value):
        return DELETED
    return value


def contributor_to_dict(contributor: Contributor) -> dict:
    if isinstance(contributor, UserContributor):
        return {'username': contributor.username, 'id': contributor.id}
    if isinstance(contributor, AnonymousContributor):
        return {'ip': contributor.ip}
    return dict(_DELETED_MAP)


def contributor_from_dict(data: dict) -> Contributor:
    if 'username' in data:
        return UserContributor(username=data['username'], id=data['id'])
    if 'ip' in data:
        return AnonymousContributor(ip=data['ip'])
    if _is_deleted_map(data):
        return DELETED
    raise ValueError(f"unknown contributor shape: {data!r}")


def revision_to_dict(rev: Revision) -> dict:
    """Revision を dict に射影する。None のフィールドはキーごと省く（minor は常に出す）。"""
    values = {
        'id': rev.id,
        'parent_id': rev.parent_id,
        'timestamp': rev.timestamp,
        'contributor': contributor_to_dict(rev.contributor),
        'comment': _redactable_to_plain(rev.comment),
        'model': rev.model,
        'format': rev.format,
        'text': _redactable_to_plain(rev.text),
        'sha1': rev.sha1,
        'minor': rev.minor,
    }
    return {k: values[k] for k in REVISION_FIELDS if values[k] is not None}


def page_to_dict(page: Page) -> dict:
    """
    Page を出力用の dict に射影する。CBOR / JSONL / MessagePack はこの形をそのまま書く。
    欠落フィールドはキーを持たない（null にはしない）。
    """
    values = {
        'title': page.title,
        'namespace': page.namespace,
        'id': page.id,
        'redirect_target': page.redirect_target,
        'restrictions': page.restrictions,
        'revisions': [revision_to_dict(r) for r in page.revisions],
    }
    return {k: values[k] for k in PAGE_FIELDS if values[k] is not None}


def revision_from_dict(data: dict) -> Revision:
    return Revision(
        id=data['id'],
        parent_id=data.get('parent_id'),
        timestamp=data['timestamp'],
        contributor=contributor_from_dict(data['contributor']),
        comment=_redactable_from_plain(data.get('comment')),
        model=data.get('model'),
        format=data.get('format'),
        text=_redactable_from_plain(data.get('text')),
        sha1=data.get('sha1'),
        minor=bool(data.get('minor', False)),
    )


def page_from_dict(data: dict) -> Page:
    """page_to_dict の逆変換。出力を読み戻してレコードモデルに戻すときに使う。"""
    return Page(
        title=data['title'],
        namespace=data['namespace'],
        id=data['id'],
        redirect_target=data.get('redirect_target'),
        restrictions=data.get('restrictions'),
        revisions=tuple(revision_from_dict(r) for r in data.get('revisions', ())),
    )
