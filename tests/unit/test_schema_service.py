"""Unit tests for SchemaService and SchemaRepository row mapping."""

import json

import pytest

from statquery.domain.catalog import SchemaCatalog, SchemaDescriptor
from statquery.domain.errors import DatabaseQueryError, SchemaError
from statquery.domain.schema_nodes import RelationshipNode
from statquery.repositories.schema_repository import SchemaRepository
from statquery.services.schema_service import SchemaService

from stubs import StubDatabaseClient, StubSchemaRepository


class TestSchemaService:

    async def test_reflect_selected_tables_in_order(self, f1_catalog, f1_schema_repo):
        service = SchemaService(f1_schema_repo, f1_catalog)
        restricted = SchemaCatalog(
            description=f1_catalog.description,
            schemas=[SchemaDescriptor(schema_name="f1", tables=["Drivers", "Results"])],
        )

        reflected = await service.reflect(restricted)

        assert [t.table_name for t in reflected.tables] == ["Drivers", "Results"]
        assert reflected.description == "Formula One racing statistics"
        results = reflected.tables[1]
        assert [c.column_name for c in results.columns] == [
            "resultId", "raceId", "driverId", "points", "position"
        ]
        # Races is outside the restricted catalog
        assert [fk.to_table for fk in results.foreign_keys] == ["Drivers"]

    async def test_full_catalog_keeps_all_foreign_keys(self, f1_catalog, f1_schema_repo):
        service = SchemaService(f1_schema_repo, f1_catalog)

        reflected = await service.reflect(f1_catalog)

        results = reflected.tables[2]
        assert [fk.constraint_name for fk in results.foreign_keys] == [
            "results_driver_fk", "results_race_fk"
        ]

    async def test_foreign_key_to_undeclared_table_dropped(self, f1_catalog, f1_columns):
        repo = StubSchemaRepository(
            columns=f1_columns,
            foreign_keys={("f1", "ConstructorChampionships"): [
                RelationshipNode(from_column="constructorId", to_schema="f1", to_table="Constructors",
                                 to_column="constructorId", constraint_name="champ_constructor_fk"),
            ]},
        )

        reflected = await SchemaService(repo, f1_catalog).reflect(f1_catalog)

        assert reflected.tables[3].foreign_keys == []
        assert "Constructors" not in reflected.to_prompt_json()

    async def test_reverse_engineer_schema_returns_json(self, f1_catalog, f1_schema_repo):
        service = SchemaService(f1_schema_repo, f1_catalog)

        schema_json = await service.reverse_engineer_schema(f1_catalog)

        payload = json.loads(schema_json)
        assert [t["table_name"] for t in payload["tables"]] == [
            "Drivers", "Races", "Results", "ConstructorChampionships"
        ]
        drivers = payload["tables"][0]
        assert drivers["schema_name"] == "f1"
        assert drivers["columns"][0] == {
            "column_name": "driverId",
            "data_type": "integer",
            "is_nullable": True,
            "is_primary_key": True,
        }

    async def test_missing_table_reflects_without_columns(self, f1_catalog):
        service = SchemaService(StubSchemaRepository(), f1_catalog)

        reflected = await service.reflect(f1_catalog)

        assert all(t.columns == [] for t in reflected.tables)

    async def test_introspection_failure_raises_schema_error(self, f1_catalog):
        service = SchemaService(StubSchemaRepository(fail=True), f1_catalog)

        with pytest.raises(SchemaError, match="Schema reflection failed"):
            await service.reflect(f1_catalog)

    def test_get_catalog(self, f1_catalog, f1_schema_repo):
        assert SchemaService(f1_schema_repo, f1_catalog).get_catalog() is f1_catalog


class TestSchemaRepository:

    async def test_get_columns_maps_rows(self):
        db = StubDatabaseClient(lambda sql: [
            {"column_name": "driverId", "is_nullable": "NO", "data_type": "integer", "is_primary_key": True},
            {"column_name": "surname", "is_nullable": "YES", "data_type": "text", "is_primary_key": False},
        ])

        columns = await SchemaRepository(db).get_columns("f1", "Drivers")

        assert [(c.column_name, c.is_nullable, c.is_primary_key) for c in columns] == [
            ("driverId", False, True),
            ("surname", True, False),
        ]
        assert db.calls[0]["read_only"] is True

    async def test_get_column_names(self):
        db = StubDatabaseClient(lambda sql: [{"column_name": "driverId"}, {"column_name": "surname"}])

        assert await SchemaRepository(db).get_column_names("f1", "Drivers") == ["driverId", "surname"]

    async def test_get_foreign_keys_maps_rows(self):
        db = StubDatabaseClient(lambda sql: [{
            "constraint_name": "results_driver_fk",
            "from_column": "driverId",
            "to_schema": "f1",
            "to_table": "Drivers",
            "to_column": "driverId",
        }])

        foreign_keys = await SchemaRepository(db).get_foreign_keys("f1", "Results")

        assert foreign_keys[0].to_table == "Drivers"
        assert foreign_keys[0].constraint_name == "results_driver_fk"

    async def test_driver_error_wrapped(self):
        db = StubDatabaseClient(lambda sql: RuntimeError("connection reset"))

        with pytest.raises(DatabaseQueryError, match="f1.Drivers"):
            await SchemaRepository(db).get_columns("f1", "Drivers")
