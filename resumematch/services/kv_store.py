import asyncio
import logging
import re
from dataclasses import dataclass
from typing import Callable, List, Optional, TypeVar, Union

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from resumematch.core.exceptions import StorageError
from resumematch.models.kv_entry import KVEntry

logger = logging.getLogger(__name__)

T = TypeVar("T")

LIKE_ESCAPE = "\\"

@dataclass(frozen=True)
class KVItem:
    key: str
    value: str

def glob_to_like(pattern: str) -> str:
    """Translate a `*` glob into a LIKE expression; everything else is literal."""
    escaped = (
        pattern.replace(LIKE_ESCAPE, LIKE_ESCAPE * 2)
        .replace("%", LIKE_ESCAPE + "%")
        .replace("_", LIKE_ESCAPE + "_")
    )
    return escaped.replace("*", "%")

def glob_to_regex(pattern: str) -> "re.Pattern[str]":
    return re.compile(".*".join(re.escape(part) for part in pattern.split("*")), re.DOTALL)

class SQLKeyValueStore:
    """
    Flat string-to-string namespace stored in the `kv_entries` table.

    Each call opens its own session in a worker thread. Nothing spans calls:
    callers must not assume atomicity across get/set pairs.
    """

    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory

    def _with_session(self, operation: Callable[[Session], T]) -> T:
        db = self._session_factory()
        try:
            return operation(db)
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Key-value operation failed: {e}")
            raise StorageError("Key-value store operation failed") from e
        finally:
            db.close()

    async def _run(self, operation: Callable[[Session], T]) -> T:
        return await asyncio.to_thread(self._with_session, operation)

    async def get(self, key: str) -> Optional[str]:
        def _get(db: Session) -> Optional[str]:
            entry = db.query(KVEntry).filter(KVEntry.key == key).first()
            return entry.value if entry else None

        return await self._run(_get)

    async def set(self, key: str, value: str) -> None:
        def _set(db: Session) -> None:
            db.merge(KVEntry(key=key, value=value))
            db.commit()

        await self._run(_set)

    async def set_if_absent(self, key: str, value: str) -> bool:
        """Create the key only if it does not exist yet. Returns False when it already did."""
        def _create(db: Session) -> bool:
            db.add(KVEntry(key=key, value=value))
            try:
                db.commit()
            except IntegrityError:
                db.rollback()
                return False
            return True

        return await self._run(_create)

    async def list(self, pattern: str, with_values: bool = False) -> Union[List[str], List[KVItem]]:
        like = glob_to_like(pattern)
        # SQLite LIKE ignores ASCII case; the regex keeps matching exact
        matcher = glob_to_regex(pattern)

        def _list(db: Session):
            if with_values:
                rows = (
                    db.query(KVEntry.key, KVEntry.value)
                    .filter(KVEntry.key.like(like, escape=LIKE_ESCAPE))
                    .order_by(KVEntry.key)
                    .all()
                )
                return [KVItem(key=row.key, value=row.value) for row in rows if matcher.fullmatch(row.key)]
            # Keys only, stored payloads stay in the database
            rows = (
                db.query(KVEntry.key)
                .filter(KVEntry.key.like(like, escape=LIKE_ESCAPE))
                .order_by(KVEntry.key)
                .all()
            )
            return [row.key for row in rows if matcher.fullmatch(row.key)]

        return await self._run(_list)

    async def flush(self) -> None:
        """Delete every key in the namespace."""
        def _flush(db: Session) -> int:
            count = db.query(KVEntry).delete(synchronize_session=False)
            db.commit()
            return count

        count = await self._run(_flush)
        logger.info(f"Flushed key-value store ({count} keys)")

    async def ping(self) -> bool:
        def _ping(db: Session) -> bool:
            db.query(KVEntry.key).limit(1).all()
            return True

        return await self._run(_ping)
