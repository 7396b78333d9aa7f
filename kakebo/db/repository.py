"""
Kakebo Repository - Base class for table-scoped data access.

Every table in this schema belongs to one user, so the helpers always put
``user_id = $1`` first in the WHERE clause. Subclasses set TABLE_NAME and
add their own query methods.
"""

from typing import Any, Dict, List, Optional

from .database import Database


class Repository:

    TABLE_NAME: str = ""

    def __init__(self, db: Database):
        self._db = db

    @property
    def db(self) -> Database:
        return self._db

    async def _insert(self, data: Dict[str, Any], returning: str = "*") -> Dict[str, Any]:
        columns = list(data.keys())
        placeholders = [f"${i + 1}" for i in range(len(columns))]
        query = (
            f"INSERT INTO {self.TABLE_NAME} ({', '.join(columns)}) "
            f"VALUES ({', '.join(placeholders)}) "
            f"RETURNING {returning}"
        )
        row = await self._db.fetchrow(query, *data.values())
        return dict(row)

    async def _update_owned(
        self,
        user_id: str,
        row_id: Any,
        data: Dict[str, Any],
        returning: str = "*",
    ) -> Optional[Dict[str, Any]]:
        """Update one row by id, only if it belongs to *user_id*."""
        set_clauses = [f"{column} = ${i + 3}" for i, column in enumerate(data)]
        query = (
            f"UPDATE {self.TABLE_NAME} "
            f"SET {', '.join(set_clauses)} "
            f"WHERE user_id = $1 AND id = $2 "
            f"RETURNING {returning}"
        )
        row = await self._db.fetchrow(query, user_id, row_id, *data.values())
        return dict(row) if row else None

    async def _fetch_owned(
        self,
        user_id: str,
        where: str = "",
        args: tuple = (),
        order_by: str = "",
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        """Fetch this user's rows; extra placeholders in *where* start at $2."""
        query = f"SELECT * FROM {self.TABLE_NAME} WHERE user_id = $1"
        if where:
            query += f" AND {where}"
        if order_by:
            query += f" ORDER BY {order_by}"
        if limit:
            query += f" LIMIT {int(limit)}"
        rows = await self._db.fetch(query, user_id, *args)
        return [dict(r) for r in rows]

    async def _fetch_one_owned(
        self, user_id: str, where: str = "", args: tuple = ()
    ) -> Optional[Dict[str, Any]]:
        rows = await self._fetch_owned(user_id, where, args, limit=1)
        return rows[0] if rows else None
