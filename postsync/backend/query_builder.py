"""
Immutable builder for the SELECT statements issued by the PostgreSQL gateway.
The goal is to produce SQL and parameters without executing anything.
"""

from typing import Any


def escape_like(term: str) -> str:
    """Escape LIKE wildcards so the term matches literally"""
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class PostQuery:
    """
    Query builder for post listings.

    Usage:
        query = PostQuery("posts").where("user_id", user_id).order_by_desc("created_at")
        sql, params = query.paginate(page=2, per_page=10).build()
        count_sql, count_params = query.build_count()
    """

    def __init__(self, table_name: str):
        self.table_name = table_name
        self.select_fields = "*"
        self.where_conditions: list[str] = []
        self.params: list[Any] = []
        self.order_by_parts: list[str] = []
        self.limit_count: int | None = None
        self.offset_count: int | None = None

    def _clone(self) -> "PostQuery":
        """Create a copy of the current builder"""
        new_query = PostQuery(self.table_name)
        new_query.select_fields = self.select_fields
        new_query.where_conditions = self.where_conditions.copy()
        new_query.params = self.params.copy()
        new_query.order_by_parts = self.order_by_parts.copy()
        new_query.limit_count = self.limit_count
        new_query.offset_count = self.offset_count
        return new_query

    def _next_placeholder(self) -> str:
        return f"${len(self.params) + 1}"

    def select(self, *fields: str) -> "PostQuery":
        """Set the SELECT fields; defaults to * when none is provided"""
        new_query = self._clone()
        new_query.select_fields = ", ".join(fields) if fields else "*"
        return new_query

    def where(self, field: str, *args: Any) -> "PostQuery":
        """Add an AND condition.

        Supports both: where(field, value) and where(field, operator, value).
        A None value becomes IS NULL / IS NOT NULL.
        """
        if len(args) == 2:
            operator, value = args
        elif len(args) == 1:
            operator, value = "=", args[0]
        else:
            raise TypeError("where() expects (field, value) or (field, operator, value)")

        new_query = self._clone()
        if value is None and operator in ("=", "!=", "<>"):
            null_check = "IS NULL" if operator == "=" else "IS NOT NULL"
            new_query.where_conditions.append(f"{field} {null_check}")
        else:
            new_query.where_conditions.append(
                f"{field} {operator} {new_query._next_placeholder()}"
            )
            new_query.params.append(value)
        return new_query

    def where_any_ilike(self, fields: list[str], term: str) -> "PostQuery":
        """Add a grouped condition matching term case-insensitively in any field"""
        if not fields:
            return self
        new_query = self._clone()
        placeholder = new_query._next_placeholder()
        new_query.params.append(f"%{escape_like(term)}%")
        group = " OR ".join(f"{field} ILIKE {placeholder}" for field in fields)
        new_query.where_conditions.append(f"({group})")
        return new_query

    def order_by_asc(self, field: str) -> "PostQuery":
        """Add ORDER BY ... ASC. Can be chained for multiple fields."""
        new_query = self._clone()
        new_query.order_by_parts.append(field)
        return new_query

    def order_by_desc(self, field: str) -> "PostQuery":
        """Add ORDER BY ... DESC. Can be chained for multiple fields."""
        new_query = self._clone()
        new_query.order_by_parts.append(f"{field} DESC")
        return new_query

    def limit(self, count: int) -> "PostQuery":
        new_query = self._clone()
        new_query.limit_count = count
        return new_query

    def offset(self, count: int) -> "PostQuery":
        new_query = self._clone()
        new_query.offset_count = count
        return new_query

    def paginate(self, page: int, per_page: int = 10) -> "PostQuery":
        """
        Set LIMIT and OFFSET for a 1-based page

        Args:
            page: Page number (1-based)
            per_page: Number of records per page (default: 10)
        """
        if page < 1:
            raise ValueError("Page number must be 1 or greater")
        if per_page < 1:
            raise ValueError("Per page count must be 1 or greater")

        return self.limit(per_page).offset((page - 1) * per_page)

    def _where_clause(self) -> str:
        if not self.where_conditions:
            return ""
        return f" WHERE {' AND '.join(self.where_conditions)}"

    def build(self) -> tuple[str, list[Any]]:
        """Build the final SQL query and parameters"""
        query = f"SELECT {self.select_fields} FROM {self.table_name}{self._where_clause()}"

        if self.order_by_parts:
            query += f" ORDER BY {', '.join(self.order_by_parts)}"
        if self.limit_count is not None:
            query += f" LIMIT {self.limit_count}"
        if self.offset_count is not None:
            query += f" OFFSET {self.offset_count}"

        return query, self.params.copy()

    def build_count(self) -> tuple[str, list[Any]]:
        """Build a COUNT(*) over the same conditions, ignoring order and paging"""
        return (
            f"SELECT COUNT(*) FROM {self.table_name}{self._where_clause()}",
            self.params.copy(),
        )

    def to_sql(self) -> str:
        """Return only the SQL query string without parameters"""
        query, _ = self.build()
        return query

    def __str__(self) -> str:
        query, params = self.build()
        return f"Query: {query}\nParams: {params}"
