"""
Schema catalog models.

The catalog is the static, declared list of schemas and tables the assistant
may query. It is supplied by configuration and never discovered at runtime;
table selection only ever narrows it.
"""

from typing import Iterable, Iterator, List, Self, Tuple

from pydantic import BaseModel, Field, field_validator, model_validator


class SchemaDescriptor(BaseModel):
    """A database schema and the ordered tables declared for it."""

    schema_name: str = Field(..., min_length=1, description="Database schema name")
    tables: List[str] = Field(default_factory=list, description="Declared table names, in order")

    @field_validator("tables")
    @classmethod
    def tables_unique(cls, tables: List[str]) -> List[str]:
        seen = set()
        for table in tables:
            if not table or not table.strip():
                raise ValueError("Table names must be non-empty")
            if table in seen:
                raise ValueError(f"Table '{table}' declared more than once")
            seen.add(table)
        return tables


class SelectedTable(BaseModel):
    """A schema-qualified table chosen by table selection."""

    schema_name: str = Field(..., description="Database schema name")
    table_name: str = Field(..., description="Table name")
    similarity: float | None = Field(
        default=None,
        description="Cosine similarity to the query (None when gating was skipped)"
    )

    @property
    def qualified_name(self) -> str:
        return f"{self.schema_name}.{self.table_name}"


class SchemaCatalog(BaseModel):
    """
    Declared description of the queryable database.

    Attributes:
        description: Free-text domain description included in prompts
        schemas: Ordered schema declarations
    """

    description: str = Field(default="", description="Free-text description of the data domain")
    schemas: List[SchemaDescriptor] = Field(default_factory=list, description="Declared schemas")

    @model_validator(mode="after")
    def schema_names_unique(self) -> Self:
        names = [s.schema_name for s in self.schemas]
        duplicates = {n for n in names if names.count(n) > 1}
        if duplicates:
            raise ValueError(f"Schemas declared more than once: {', '.join(sorted(duplicates))}")
        return self

    def iter_tables(self) -> Iterator[Tuple[str, str]]:
        """Yield (schema_name, table_name) in declaration order."""
        for schema in self.schemas:
            for table in schema.tables:
                yield schema.schema_name, table

    def all_tables(self) -> List[SelectedTable]:
        return [
            SelectedTable(schema_name=schema_name, table_name=table_name)
            for schema_name, table_name in self.iter_tables()
        ]

    def contains(self, schema_name: str, table_name: str) -> bool:
        return (schema_name, table_name) in set(self.iter_tables())

    def is_empty(self) -> bool:
        return not any(schema.tables for schema in self.schemas)

    def restrict_to(self, selected: Iterable[SelectedTable]) -> "SchemaCatalog":
        """
        Build the filtered catalog for the selected tables.

        Declaration order is preserved and tables absent from the catalog are
        ignored. An empty selection returns the full catalog so the SQL
        generator always has something to work with.
        """
        wanted = {(t.schema_name, t.table_name) for t in selected}

        filtered: List[SchemaDescriptor] = []
        for schema in self.schemas:
            tables = [t for t in schema.tables if (schema.schema_name, t) in wanted]
            if tables:
                filtered.append(SchemaDescriptor(schema_name=schema.schema_name, tables=tables))

        if not filtered:
            return self.model_copy(deep=True)

        return SchemaCatalog(description=self.description, schemas=filtered)
