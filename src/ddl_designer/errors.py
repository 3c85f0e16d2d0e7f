"""Exception hierarchy for the DDL designer.

Synthesis-time problems (``InvalidDefinitionError``) are raised before any
SQL text exists.  Execution-time problems (``ExecutionFailureError``) wrap
whatever the execution collaborator raised, unmodified, and record how far
the statement sequence got.

Unsupported lowerings are not exceptions -- they are rendered as SQL
comments (see ``StatementKind.NOTE``) so a preview can show them.
"""


class DdlDesignerError(Exception):
    """Base class for all ddl_designer errors."""

    pass


class InvalidDefinitionError(DdlDesignerError):
    """Raised when a table definition cannot be synthesized.

    Example causes: empty table name, no live columns, an index that
    covers no columns.
    """

    pass


class SessionClosedError(DdlDesignerError):
    """Raised when a designer session is used after save or close."""

    pass


class ExecutionFailureError(DdlDesignerError):
    """A statement failed in the execution collaborator.

    The remaining statements of the sequence were not attempted and the
    statements already executed were not rolled back.

    Attributes:
        statement: SQL text of the failing statement.
        index: Zero-based position of the failing statement in the sequence.
        executed: Statements that completed before the failure.
        not_attempted: Statements after the failing one.
        error: The exception raised by the collaborator.
    """

    def __init__(
        self,
        statement: str,
        index: int,
        error: BaseException,
        executed: list[str] | None = None,
        not_attempted: list[str] | None = None,
    ) -> None:
        self.statement = statement
        self.index = index
        self.error = error
        self.executed = list(executed or [])
        self.not_attempted = list(not_attempted or [])
        super().__init__(str(error))

    def format_report(self) -> str:
        """Describe which statement failed and what was skipped."""
        lines = [
            f"Statement {self.index + 1} failed: {self.statement}",
            f"  Error: {self.error}",
        ]
        if self.executed:
            lines.append(f"  Already executed ({len(self.executed)}), not rolled back:")
            lines.extend(f"    - {sql}" for sql in self.executed)
        if self.not_attempted:
            lines.append(f"  Not attempted ({len(self.not_attempted)}):")
            lines.extend(f"    - {sql}" for sql in self.not_attempted)
        return "\n".join(lines)
