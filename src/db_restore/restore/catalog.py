"""Declarative table catalog with dependency edges.

Each table declares its primary key, its identity policy, the tables it
references, and any legacy names the backup producer used for it.  The
master restore order is derived by topological sort, so adding a table
only requires declaring its edges.

Usage:
    from db_restore.restore.catalog import IdPolicy, TableCatalog, TableDef

    catalog = TableCatalog(tables=[
        TableDef(name="authors", id_policy=IdPolicy.PRESERVE),
        TableDef(name="books", depends_on=["authors"]),
    ])
    catalog.master_order()
    # ['authors', 'books']
"""

from enum import Enum

from pydantic import BaseModel, Field

from db_restore.exceptions import CatalogError


class IdPolicy(str, Enum):
    """Whether row identities survive a restore."""

    PRESERVE = "preserve"      # identity is externally meaningful (reference/config)
    REGENERATE = "regenerate"  # identity stripped, store assigns a new one


class TableName(str, Enum):
    """Marketplace tables known to the restore engine."""

    CATEGORIES = "categories"
    PROFILES = "profiles"
    PRODUCTS = "products"
    MESSAGES = "messages"
    FAVORITES = "favorites"
    USER_RATINGS = "user_ratings"
    REPORTED_ADS = "reported_ads"
    MODERATION_LOGS = "moderation_logs"
    AUDIT_LOGS = "audit_logs"
    PLATFORM_SETTINGS = "platform_settings"


class TableDef(BaseModel):
    """Definition of a restorable table."""

    name: str
    pk: str = "id"
    id_policy: IdPolicy = IdPolicy.REGENERATE
    depends_on: list[str] = Field(default_factory=list)  # tables this one references
    aliases: list[str] = Field(default_factory=list)     # legacy backup keys


class TableCatalog(BaseModel):
    """Set of restorable tables and the FK edges between them.

    Declaration order is the tie-breaker for the topological sort.
    """

    tables: list[TableDef]

    def get(self, name: str) -> TableDef | None:
        """Find a TableDef by canonical name."""
        for table in self.tables:
            if table.name == name:
                return table
        return None

    def resolve(self, name: str) -> str | None:
        """Map a table name or alias to its canonical name.

        Returns:
            The canonical table name, or ``None`` if the name is unknown.
        """
        for table in self.tables:
            if name == table.name or name in table.aliases:
                return table.name
        return None

    def master_order(self) -> list[str]:
        """Topologically sort tables so referenced tables come first.

        Depth-first: each table is emitted after all of its dependencies.
        Tables are visited in declaration order, so a catalog declared in
        a valid order is returned unchanged.

        Returns:
            Canonical table names, parents before children.

        Raises:
            CatalogError: On a dependency cycle or an edge to an undeclared
                table.
        """
        by_name = {t.name: t for t in self.tables}
        white, gray, black = 0, 1, 2
        state: dict[str, int] = dict.fromkeys(by_name, white)
        path: list[str] = []
        order: list[str] = []

        def visit(name: str) -> None:
            if state[name] == black:
                return
            if state[name] == gray:
                cycle = " -> ".join(path[path.index(name):] + [name])
                raise CatalogError(f"Circular table dependency: {cycle}")

            state[name] = gray
            path.append(name)
            for dep in by_name[name].depends_on:
                if dep == name:
                    continue  # self-reference (e.g., parent category)
                if dep not in by_name:
                    raise CatalogError(
                        f"Table '{name}' depends on undeclared table '{dep}'"
                    )
                visit(dep)
            path.pop()
            state[name] = black
            order.append(name)

        for table in self.tables:
            visit(table.name)

        return order


MARKETPLACE_CATALOG = TableCatalog(
    tables=[
        TableDef(name=TableName.CATEGORIES.value, id_policy=IdPolicy.PRESERVE),
        TableDef(name=TableName.PROFILES.value),
        TableDef(
            name=TableName.PRODUCTS.value,
            depends_on=[TableName.CATEGORIES.value, TableName.PROFILES.value],
        ),
        TableDef(
            name=TableName.MESSAGES.value,
            depends_on=[TableName.PROFILES.value, TableName.PRODUCTS.value],
        ),
        TableDef(
            name=TableName.FAVORITES.value,
            depends_on=[TableName.PROFILES.value, TableName.PRODUCTS.value],
        ),
        TableDef(
            name=TableName.USER_RATINGS.value,
            depends_on=[TableName.PROFILES.value],
            aliases=["ratings"],
        ),
        TableDef(
            name=TableName.REPORTED_ADS.value,
            depends_on=[TableName.PRODUCTS.value, TableName.PROFILES.value],
            aliases=["reports"],
        ),
        TableDef(
            name=TableName.MODERATION_LOGS.value,
            depends_on=[TableName.PRODUCTS.value, TableName.PROFILES.value],
        ),
        TableDef(
            name=TableName.AUDIT_LOGS.value,
            depends_on=[TableName.PROFILES.value],
        ),
        TableDef(
            name=TableName.PLATFORM_SETTINGS.value,
            id_policy=IdPolicy.PRESERVE,
            aliases=["settings"],
        ),
    ]
)
