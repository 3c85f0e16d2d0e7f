"""Pydantic models for the table designer.

This module contains the dialect-neutral definition shapes:
- Row models: ColumnDefinition, IndexDefinition, ForeignKeyDefinition
- Table-level models: TableOptions, TableDefinitionSnapshot
- Literal tagging for column defaults: DefaultValue

Every row carries an opaque ``id`` generated when the row is created.
The id -- never the name -- is what ties a working row to its original,
so renames survive diffing.

The ``status`` field on each row is an editing hint for display.  The
differ does not read it; it recomputes changes from the two snapshots.
"""

import re
import uuid
from enum import Enum
from typing import Any, ClassVar, NewType

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

RowId = NewType("RowId", str)


def new_row_id(prefix: str = "row") -> RowId:
    """Generate a fresh opaque row identity.

    Example:
        >>> new_row_id("col").startswith("col_")
        True
    """
    return RowId(f"{prefix}_{uuid.uuid4().hex}")


def quote_literal(text: str) -> str:
    """Quote *text* as a SQL string literal, doubling embedded quotes.

    Example:
        >>> quote_literal("it's")
        "'it''s'"
    """
    return "'" + text.replace("'", "''") + "'"


# ============================================================================
# Closed variants
# ============================================================================


class RowStatus(str, Enum):
    """Editing status of a column row."""

    CLEAN = "clean"
    MODIFIED = "modified"
    ADDED = "added"
    DELETED = "deleted"


class ConstraintStatus(str, Enum):
    """Editing status of an index or foreign-key row."""

    CLEAN = "clean"
    NEW = "new"
    MODIFIED = "modified"
    DELETED = "deleted"


class IndexKind(str, Enum):
    NORMAL = "normal"
    UNIQUE = "unique"
    FULLTEXT = "fulltext"


class ForeignKeyAction(str, Enum):
    """Referential action for ON DELETE / ON UPDATE."""

    RESTRICT = "restrict"
    CASCADE = "cascade"
    SET_NULL = "set-null"
    NO_ACTION = "no-action"

    @classmethod
    def _missing_(cls, value: object) -> "ForeignKeyAction | None":
        # Accept the SQL spelling ("SET NULL", "NO ACTION") as read from catalogs
        if isinstance(value, str):
            normalized = value.strip().lower().replace(" ", "-").replace("_", "-")
            for member in cls:
                if member.value == normalized:
                    return member
        return None

    @property
    def sql(self) -> str:
        """SQL keyword form, e.g. ``SET NULL``."""
        return self.value.replace("-", " ").upper()


class DefaultKind(str, Enum):
    STRING = "string"
    NUMBER = "number"
    EXPRESSION = "expression"


_NUMBER_PATTERN = re.compile(r"^[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?$")


class DefaultValue(BaseModel):
    """A column default tagged with how it must be lowered to SQL.

    - ``string``: quoted, embedded quotes doubled
    - ``number``: validated numeric literal, emitted as-is
    - ``expression``: emitted verbatim (``CURRENT_TIMESTAMP``, ``now()``)

    Example:
        >>> DefaultValue.string("O'Brien").to_sql()
        "'O''Brien'"
        >>> DefaultValue.expression("CURRENT_TIMESTAMP").to_sql()
        'CURRENT_TIMESTAMP'
    """

    model_config = ConfigDict(frozen=True)

    kind: DefaultKind = DefaultKind.EXPRESSION
    value: str

    @model_validator(mode="after")
    def _check_number(self) -> "DefaultValue":
        if self.kind is DefaultKind.NUMBER and not _NUMBER_PATTERN.match(self.value.strip()):
            raise ValueError(f"Not a numeric literal: {self.value!r}")
        return self

    @classmethod
    def string(cls, value: str) -> "DefaultValue":
        return cls(kind=DefaultKind.STRING, value=value)

    @classmethod
    def number(cls, value: str | int | float) -> "DefaultValue":
        return cls(kind=DefaultKind.NUMBER, value=str(value))

    @classmethod
    def expression(cls, value: str) -> "DefaultValue":
        return cls(kind=DefaultKind.EXPRESSION, value=value)

    def to_sql(self) -> str:
        """Render the default as SQL text."""
        if self.kind is DefaultKind.STRING:
            return quote_literal(self.value)
        if self.kind is DefaultKind.NUMBER:
            return self.value.strip()
        return self.value


# ============================================================================
# Row models
# ============================================================================


class DesignerRow(BaseModel):
    """Shared identity and edit lifecycle for designer rows.

    Subclasses name their own status values through the ``*_STATUS``
    class variables.  ``id`` and ``status`` are bookkeeping, every other
    field is part of the row's definition.
    """

    model_config = ConfigDict(validate_assignment=True)

    BOOKKEEPING_FIELDS: ClassVar[frozenset[str]] = frozenset({"id", "status"})
    CLEAN_STATUS: ClassVar[Enum]
    MODIFIED_STATUS: ClassVar[Enum]
    DELETED_STATUS: ClassVar[Enum]
    NEW_STATUS: ClassVar[Enum]

    id: RowId = Field(default_factory=new_row_id)

    def definition(self) -> dict[str, Any]:
        """Field values that describe the schema object (no bookkeeping)."""
        return self.model_dump(exclude=set(self.BOOKKEEPING_FIELDS))

    def same_definition(self, other: "DesignerRow") -> bool:
        """True when both rows describe the same schema object shape."""
        return self.definition() == other.definition()

    @property
    def is_deleted(self) -> bool:
        return self.status is self.DELETED_STATUS

    @property
    def is_new(self) -> bool:
        return self.status is self.NEW_STATUS

    def apply_changes(self, **changes: Any) -> None:
        """Edit definition fields in place.

        A ``clean`` row becomes ``modified``; rows that are already new or
        modified keep their status.

        Raises:
            ValueError: If the row is deleted, or a field is unknown or
                bookkeeping-only.
        """
        if self.is_deleted:
            raise ValueError(f"Row {self.id} is deleted; undo the delete before editing")
        editable = set(type(self).model_fields) - set(self.BOOKKEEPING_FIELDS)
        unknown = set(changes) - editable
        if unknown:
            raise ValueError(f"Cannot edit field(s): {', '.join(sorted(unknown))}")
        for field_name, value in changes.items():
            setattr(self, field_name, value)
        if self.status is self.CLEAN_STATUS:
            self.status = self.MODIFIED_STATUS


class ColumnDefinition(DesignerRow):
    """A column as edited in the designer.

    Example:
        >>> col = ColumnDefinition(name="email", data_type="varchar", length="255")
        >>> col.type_sql
        'VARCHAR(255)'
    """

    BOOKKEEPING_FIELDS: ClassVar[frozenset[str]] = frozenset({"id", "status", "original_name"})
    CLEAN_STATUS: ClassVar[Enum] = RowStatus.CLEAN
    MODIFIED_STATUS: ClassVar[Enum] = RowStatus.MODIFIED
    DELETED_STATUS: ClassVar[Enum] = RowStatus.DELETED
    NEW_STATUS: ClassVar[Enum] = RowStatus.ADDED

    id: RowId = Field(default_factory=lambda: new_row_id("col"))
    status: RowStatus = RowStatus.CLEAN
    original_name: str | None = None  # name when last persisted; None for new rows
    name: str
    data_type: str
    length: str = ""
    is_primary_key: bool = False
    is_not_null: bool = False
    is_auto_increment: bool = False
    default_value: DefaultValue | None = None
    comment: str = ""

    @field_validator("default_value", mode="before")
    @classmethod
    def _coerce_default(cls, value: Any) -> Any:
        # Plain text keeps the verbatim behaviour; numbers get a number tag
        if value is None or value == "":
            return None
        if isinstance(value, bool):
            raise ValueError("Boolean defaults must be given as an expression")
        if isinstance(value, (int, float)):
            return DefaultValue.number(value)
        if isinstance(value, str):
            return DefaultValue.expression(value)
        return value

    @property
    def type_sql(self) -> str:
        """Declared type with its length qualifier, upper-cased."""
        type_name = self.data_type.strip().upper()
        if self.length.strip():
            return f"{type_name}({self.length.strip()})"
        return type_name

    @property
    def effective_not_null(self) -> bool:
        """NOT NULL is implied for primary key columns."""
        return self.is_not_null or self.is_primary_key


class IndexDefinition(DesignerRow):
    """An index over an ordered list of column names."""

    CLEAN_STATUS: ClassVar[Enum] = ConstraintStatus.CLEAN
    MODIFIED_STATUS: ClassVar[Enum] = ConstraintStatus.MODIFIED
    DELETED_STATUS: ClassVar[Enum] = ConstraintStatus.DELETED
    NEW_STATUS: ClassVar[Enum] = ConstraintStatus.NEW

    id: RowId = Field(default_factory=lambda: new_row_id("idx"))
    status: ConstraintStatus = ConstraintStatus.CLEAN
    name: str
    kind: IndexKind = IndexKind.NORMAL
    columns: list[str] = Field(default_factory=list)


class ForeignKeyDefinition(DesignerRow):
    """A single-column foreign key."""

    CLEAN_STATUS: ClassVar[Enum] = ConstraintStatus.CLEAN
    MODIFIED_STATUS: ClassVar[Enum] = ConstraintStatus.MODIFIED
    DELETED_STATUS: ClassVar[Enum] = ConstraintStatus.DELETED
    NEW_STATUS: ClassVar[Enum] = ConstraintStatus.NEW

    id: RowId = Field(default_factory=lambda: new_row_id("fk"))
    status: ConstraintStatus = ConstraintStatus.CLEAN
    name: str = ""
    source_column: str = ""
    ref_table: str = ""
    ref_column: str = "id"
    on_delete: ForeignKeyAction = ForeignKeyAction.RESTRICT
    on_update: ForeignKeyAction = ForeignKeyAction.RESTRICT


# ============================================================================
# Table-level models
# ============================================================================


class TableOptions(BaseModel):
    """Table-level options.  Only the MySQL-like dialect renders them."""

    model_config = ConfigDict(validate_assignment=True)

    charset: str | None = None
    collation: str | None = None
    engine: str | None = None
    auto_increment: int = Field(default=1, ge=0)
    comment: str = ""


class TableDefinitionSnapshot(BaseModel):
    """Full definition of one table at one point in time.

    Example:
        >>> snap = TableDefinitionSnapshot(
        ...     name="users",
        ...     columns=[ColumnDefinition(name="id", data_type="INT", is_primary_key=True)],
        ... )
        >>> [c.name for c in snap.live_columns()]
        ['id']
    """

    model_config = ConfigDict(validate_assignment=True)

    name: str
    columns: list[ColumnDefinition] = Field(default_factory=list)
    indexes: list[IndexDefinition] = Field(default_factory=list)
    foreign_keys: list[ForeignKeyDefinition] = Field(default_factory=list)
    options: TableOptions = Field(default_factory=TableOptions)

    def live_columns(self) -> list[ColumnDefinition]:
        """Columns that are not marked deleted, in table order."""
        return [c for c in self.columns if not c.is_deleted]

    def live_indexes(self) -> list[IndexDefinition]:
        return [i for i in self.indexes if not i.is_deleted]

    def live_foreign_keys(self) -> list[ForeignKeyDefinition]:
        return [fk for fk in self.foreign_keys if not fk.is_deleted]
