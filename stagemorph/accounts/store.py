from __future__ import annotations

from typing import Dict, Hashable, Iterator, Tuple

from stagemorph.accounts.models import AccountRecord


class AccountStore:
    """
    Holder -> AccountRecord table.

    `get` is a read: it hands back a detached copy (or a fresh zero record) and
    never persists anything. `get_or_create` returns the live, persisted record
    and is reserved for the engine right before it mutates.
    """

    def __init__(self) -> None:
        self._records: Dict[Hashable, AccountRecord] = {}

    def get(self, holder: Hashable) -> AccountRecord:
        rec = self._records.get(holder)
        if rec is None:
            return AccountRecord()
        return rec.copy()

    def get_or_create(self, holder: Hashable) -> AccountRecord:
        rec = self._records.get(holder)
        if rec is None:
            rec = AccountRecord()
            self._records[holder] = rec
        return rec

    def exists(self, holder: Hashable) -> bool:
        return holder in self._records

    def holders(self) -> Tuple[Hashable, ...]:
        return tuple(self._records)

    def items(self) -> Iterator[Tuple[Hashable, AccountRecord]]:
        for holder, rec in self._records.items():
            yield holder, rec.copy()

    def __len__(self) -> int:
        return len(self._records)
