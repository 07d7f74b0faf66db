"""Placeholder numbering, argument collection and identifier rendering.

Every fragment builder writes through one :class:`SqlWriter`, which is the
only place a value can enter a statement, and it only ever does so as a
bound parameter.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from sqla_rest._sanitize import ColumnPath, parse_column_path, quote_identifier
from sqla_rest._types import PARAMSTYLES, ParamStyle

__all__ = ["CompiledQuery", "SqlWriter"]

_PERCENT_STYLES = frozenset({"format", "pyformat"})
_NAMED_STYLES = frozenset({"named", "pyformat"})


class SqlWriter:
    """Collects bound arguments for one statement.

    Args:
        paramstyle: DBAPI placeholder style to render.

    Example::

        writer = SqlWriter()
        writer.bind("John")       # "$1"
        writer.bind(10)           # "$2"
        writer.args               # ["John", 10]
    """

    def __init__(self, paramstyle: ParamStyle = "numeric_dollar") -> None:
        if paramstyle not in PARAMSTYLES:
            raise ValueError(f"unsupported paramstyle {paramstyle!r}")
        self.paramstyle: ParamStyle = paramstyle
        self.args: list[Any] = []

    def bind(self, value: Any) -> str:
        """Register *value* and return its placeholder."""
        self.args.append(value)
        n = len(self.args)
        if self.paramstyle == "numeric_dollar":
            return f"${n}"
        if self.paramstyle == "qmark":
            return "?"
        if self.paramstyle == "numeric":
            return f":{n}"
        if self.paramstyle == "named":
            return f":p{n}"
        if self.paramstyle == "format":
            return "%s"
        return f"%(p{n})s"

    def identifier(self, name: str) -> str:
        return quote_identifier(name)

    def column(self, column: str | ColumnPath) -> str:
        """Render a column or JSONB path expression."""
        path = parse_column_path(column) if isinstance(column, str) else column
        sql = path.to_sql()
        if self.paramstyle in _PERCENT_STYLES:
            # JSON keys are the only user text that can contain "%".
            sql = sql.replace("%", "%%")
        return sql

    def finish(self, sql: str) -> CompiledQuery:
        return CompiledQuery(sql=sql, args=tuple(self.args), paramstyle=self.paramstyle)


@dataclass(frozen=True, slots=True)
class CompiledQuery:
    """Parameterized SQL ready for a driver.

    Attributes:
        sql: Statement text with placeholders in ``paramstyle``.
        args: Positional arguments, aligned with the placeholders.
        paramstyle: The placeholder style ``sql`` was rendered in.
    """

    sql: str
    args: tuple[Any, ...] = field(default=())
    paramstyle: ParamStyle = "numeric_dollar"

    @property
    def parameters(self) -> tuple[Any, ...] | dict[str, Any]:
        """Arguments in the shape the DBAPI style expects."""
        if self.paramstyle in _NAMED_STYLES:
            return {f"p{i}": arg for i, arg in enumerate(self.args, start=1)}
        return self.args

    def execute(self, connection: Any) -> Any:
        """Run on a SQLAlchemy ``Connection`` via ``exec_driver_sql``.

        The statement must have been compiled for the connection dialect's
        paramstyle.
        """
        if not self.args:
            sql = self.sql
            if self.paramstyle in _PERCENT_STYLES:
                sql = sql.replace("%%", "%")
            # Sent without parameters, so the driver does no placeholder processing.
            return connection.exec_driver_sql(sql, execution_options={"no_parameters": True})
        return connection.exec_driver_sql(self.sql, self.parameters)
