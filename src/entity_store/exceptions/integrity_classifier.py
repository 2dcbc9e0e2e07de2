"""
Best-effort classification of SQLAlchemy IntegrityErrors.

The result is diagnostic only: the adapter boundary still raises an
`InternalError` for every statement failure, and attaches the classification
as `details` so callers can tell a duplicate from a dangling foreign key.
"""
import logging
import re
from dataclasses import dataclass, asdict
from enum import Enum

from sqlalchemy.exc import IntegrityError

logger = logging.getLogger(__name__)


class ConstraintKind(str, Enum):
    UNIQUE = "unique"
    NOT_NULL = "not_null"
    FOREIGN_KEY = "foreign_key"
    CHECK = "check"
    UNKNOWN = "unknown"


# https://www.postgresql.org/docs/current/errcodes-appendix.html
PGCODE_CONSTRAINT_MAP = {
    "23505": ConstraintKind.UNIQUE,
    "23502": ConstraintKind.NOT_NULL,
    "23503": ConstraintKind.FOREIGN_KEY,
    "23514": ConstraintKind.CHECK,
}

_MESSAGE_KEYWORDS = (
    (ConstraintKind.UNIQUE, ("unique constraint", "unique failed", "unique violation", "duplicate")),
    (ConstraintKind.NOT_NULL, ("not null constraint", "not null", "null value in column")),
    (ConstraintKind.FOREIGN_KEY, ("foreign key constraint", "foreign key", "is not present in table")),
    (ConstraintKind.CHECK, ("check constraint", "check failed")),
)


@dataclass(frozen=True)
class IntegrityDiagnostic:
    constraint_kind: ConstraintKind
    constraint: str | None = None
    fields: list[str] | None = None

    def to_dict(self) -> dict:
        data = asdict(self)
        data["constraint_kind"] = self.constraint_kind.value
        return data


def _classify_from_postgres_diag(orig) -> tuple[ConstraintKind | None, str | None]:
    pgcode = getattr(orig, "pgcode", None) or getattr(orig, "sqlstate", None)
    if not pgcode:
        return None, None

    diag = getattr(orig, "diag", None)
    constraint_name = getattr(diag, "constraint_name", None) if diag else None

    kind = PGCODE_CONSTRAINT_MAP.get(pgcode)
    if kind is None:
        logger.warning(
            "integrity.unknown_pgcode",
            extra={"pgcode": pgcode, "constraint_name": constraint_name},
        )
        return ConstraintKind.UNKNOWN, constraint_name

    logger.debug("integrity.postgres_diag", extra={"pgcode": pgcode, "constraint_name": constraint_name})
    return kind, constraint_name


def _classify_from_message(msg: str) -> ConstraintKind:
    normalized = (msg or "").lower()
    for kind, keywords in _MESSAGE_KEYWORDS:
        if any(keyword in normalized for keyword in keywords):
            return kind
    logger.debug("integrity.unknown_message", extra={"message_snippet": normalized[:200]})
    return ConstraintKind.UNKNOWN


def extract_columns(msg: str) -> list[str] | None:
    """
    Pull column names out of Postgres / SQLite driver messages:
      - 'null value in column "username" violates not-null constraint'
      - 'DETAIL:  Key (email, username)=(a@b.com, u) already exists.'
      - 'UNIQUE constraint failed: authors.name'
    """
    if not msg:
        return None

    m = re.search(r'null value in column "(?P<col>[^"]+)"', msg, flags=re.IGNORECASE)
    if m:
        return [m.group("col")]

    m = re.search(r'key \((?P<cols>[^)]+)\)=', msg, flags=re.IGNORECASE)
    if m:
        return [c.strip().strip('"') for c in m.group("cols").split(",")]

    m = re.search(r'(?:UNIQUE|NOT NULL) constraint failed: (?P<cols>.+)$', msg, flags=re.IGNORECASE | re.MULTILINE)
    if m:
        return [c.split('.')[-1].strip() for c in re.split(r',\s*', m.group("cols"))]

    return None


def classify_integrity_error(exc: IntegrityError) -> IntegrityDiagnostic:
    orig = exc.orig
    msg = str(orig) if orig is not None else str(exc)

    kind, constraint_name = _classify_from_postgres_diag(orig)
    if kind is None:
        kind = _classify_from_message(msg)

    return IntegrityDiagnostic(
        constraint_kind=kind,
        constraint=constraint_name,
        fields=extract_columns(msg),
    )
