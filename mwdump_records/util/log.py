"""
進捗ログを stderr に出力する。出力先 (stdout) をレコードで使うため、ログは必ず stderr。
"""

import sys
import time
from typing import Optional


def log(msg: str) -> None:
    """メッセージを stderr に書き出す（UTF-8）。"""
    print(msg, file=sys.stderr, flush=True)


def format_elapsed(seconds: float) -> str:
    """秒数を実行時間表示用に整形する（例: 1h23m45s、12m34s）。"""
    if seconds < 0:
        return "0s"
    s = int(round(seconds))
    if s < 60:
        return f"{s}s"
    m, s = divmod(s, 60)
    if m < 60:
        return f"{m}m{s}s"
    h, m = divmod(m, 60)
    return f"{h}h{m}m{s}s"


def format_bytes(n: int) -> str:
    """バイト数を KiB/MiB/GiB 単位の短い文字列にする。"""
    size = float(max(n, 0))
    for unit in ('B', 'KiB', 'MiB', 'GiB'):
        if size < 1024 or unit == 'GiB':
            return f"{int(size)}{unit}" if unit == 'B' else f"{size:.1f}{unit}"
        size /= 1024
    return f"{size:.1f}GiB"


def log_progress(
    stage: str,
    count: Optional[int] = None,
    elapsed: Optional[float] = None,
    offset: Optional[int] = None,
) -> None:
    """
    進捗を1行で出す: [stage] pages=N input=X elapsed=Ts rate=R/s。
    与えられた項目だけを並べる。rate は件数と経過秒数が両方あるときだけ。
    """
    parts = [f"[{stage}]"]
    if count is not None:
        parts.append(f"pages={count}")
    if offset is not None:
        parts.append(f"input={format_bytes(offset)}")
    if elapsed is not None:
        parts.append(f"elapsed={elapsed:.1f}s")
        if count is not None and elapsed > 0:
            parts.append(f"rate={count / elapsed:.0f}/s")
    log(" ".join(parts))


class Timer:
    """経過時間を計測する簡易コンテキストマネージャ。with を抜けた時点で止まる。"""

    def __init__(self) -> None:
        self.start: float = 0.0
        self.end: Optional[float] = None

    def __enter__(self) -> "Timer":
        self.start = time.perf_counter()
        self.end = None
        return self

    def __exit__(self, *args: object) -> None:
        self.end = time.perf_counter()

    @property
    def elapsed(self) -> float:
        end = self.end if self.end is not None else time.perf_counter()
        return end - self.start


class ProgressReporter:
    """
    変換の進捗を every ページごとに log_progress で出す。every が 0 / None なら何も出さない。

    >>> with ProgressReporter('cbor', every=10000) as progress:
    ...     progress.update(count, offset)
    """

    def __init__(self, stage: str, every: Optional[int]) -> None:
        self.stage = stage
        self.every = every or 0
        self.timer = Timer()

    def __enter__(self) -> "ProgressReporter":
        self.timer.__enter__()
        return self

    def __exit__(self, *args: object) -> None:
        self.timer.__exit__(*args)

    def update(self, count: int, offset: int) -> None:
        if self.every and count % self.every == 0:
            log_progress(f"{self.stage}: pages written", count=count, elapsed=self.timer.elapsed, offset=offset)

    def done(self, count: int, offset: int) -> None:
        if self.every:
            log_progress(f"{self.stage}: done", count=count, elapsed=self.timer.elapsed, offset=offset)
