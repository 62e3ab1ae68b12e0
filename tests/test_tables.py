import json

import pytest

from kbcstorage.keboola.tables import (
    BaseType,
    Clustering,
    Column,
    ColumnDefinition,
    ColumnMetadataRequest,
    Columns,
    Range,
    RangePartitioning,
    TableDefinition,
    TableMetadataRequest,
    TimePartitioning,
    TimePartitioningType,
    columns_to_csv_header,
    create_table_definition_body,
    decode_columns_metadata,
    table_metadata_body,
)


def _min_definition():
    return TableDefinition(
        primary_key_names=["name"],
        columns=Columns(
            [
                Column("name", ColumnDefinition(type="STRING"), BaseType.STRING),
                Column("age", ColumnDefinition(type="INT"), BaseType.NUMERIC),
                Column("time", ColumnDefinition(type="DATE"), BaseType.DATE),
            ]
        ),
    )


def test_columns_names():
    assert _min_definition().columns.names() == ["name", "age", "time"]


def test_columns_names_without_definition():
    definition = TableDefinition(primary_key_names=["name"], columns=[Column("name"), Column("age"), Column("time")])
    assert definition.columns.names() == ["name", "age", "time"]


def test_columns_names_empty():
    assert Columns().names() == []


def test_base_type_values():
    assert str(BaseType.INTEGER) == "INTEGER"
    assert BaseType("TIMESTAMP") is BaseType.TIMESTAMP


def test_definition_to_json():
    assert _min_definition().to_json() == {
        "primaryKeysNames": ["name"],
        "columns": [
            {
                "name": "name",
                "definition": {"type": "STRING", "length": "", "nullable": False, "default": ""},
                "basetype": "STRING",
            },
            {
                "name": "age",
                "definition": {"type": "INT", "length": "", "nullable": False, "default": ""},
                "basetype": "NUMERIC",
            },
            {
                "name": "time",
                "definition": {"type": "DATE", "length": "", "nullable": False, "default": ""},
                "basetype": "DATE",
            },
        ],
    }


def test_column_without_definition_omits_keys():
    definition = TableDefinition(columns=[Column("name")])
    assert definition.to_json()["columns"] == [{"name": "name"}]


def test_time_partitioning_json():
    definition = TableDefinition(
        primary_key_names=["id"],
        columns=[Column("id", ColumnDefinition(type="INTEGER"), BaseType.INTEGER)],
        time_partitioning=TimePartitioning(type=TimePartitioningType.DAY, expiration_ms="864000000", field="time"),
    )
    assert definition.to_json()["timePartitioning"] == {
        "type": "DAY",
        "expirationMs": "864000000",
        "field": "time",
    }
    assert "rangePartitioning" not in definition.to_json()
    assert "clustering" not in definition.to_json()


def test_time_partitioning_omits_empty():
    definition = TableDefinition(time_partitioning=TimePartitioning(type=TimePartitioningType.HOUR))
    assert definition.to_json()["timePartitioning"] == {"type": "HOUR"}


def test_range_partitioning_and_clustering_json():
    definition = TableDefinition(
        range_partitioning=RangePartitioning(field="id", range=Range(start="0", end="10", interval="1")),
        clustering=Clustering(fields=["id"]),
    )
    data = definition.to_json()
    assert data["rangePartitioning"] == {"field": "id", "range": {"start": "0", "end": "10", "interval": "1"}}
    assert data["clustering"] == {"fields": ["id"]}


def test_definition_round_trip():
    original = TableDefinition(
        primary_key_names=["email"],
        columns=[
            Column("email", ColumnDefinition("VARCHAR", "16777216", False, ""), BaseType.STRING),
            Column("comments", ColumnDefinition("NUMBER", "37", True, "100"), BaseType.NUMERIC),
        ],
        time_partitioning=TimePartitioning(type=TimePartitioningType.MONTH, field="time"),
        range_partitioning=RangePartitioning(field="id", range=Range("0", "10", "1")),
        clustering=Clustering(["id"]),
    )
    decoded = TableDefinition.from_json(json.dumps(original.to_json()))
    assert decoded == original
    assert isinstance(decoded.columns, Columns)


def test_from_json_server_response():
    decoded = TableDefinition.from_json(
        {
            "primaryKeysNames": ["name"],
            "columns": [
                {
                    "name": "age",
                    "definition": {"type": "NUMBER", "nullable": False, "length": "38,0"},
                    "basetype": "INTEGER",
                },
                {"name": "raw"},
            ],
        }
    )
    assert decoded.columns[0] == Column("age", ColumnDefinition("NUMBER", "38,0", False, ""), BaseType.INTEGER)
    assert decoded.columns[1] == Column("raw")
    assert decoded.time_partitioning is None


def test_from_json_rejects_non_object():
    with pytest.raises(ValueError):
        TableDefinition.from_json("[1, 2]")


def test_columns_to_csv_header_plain():
    assert columns_to_csv_header(["first", "second", "third", "fourth"]) == b"first,second,third,fourth\n"


def test_columns_to_csv_header_quoting():
    assert columns_to_csv_header(['a,b', 'say "hi"', " lead", ""]) == b'"a,b","say ""hi"""," lead",\n'


def test_create_table_definition_body():
    body = create_table_definition_body("my_table", TableDefinition(primary_key_names=["id"], columns=[Column("id")]))
    assert body == {"primaryKeysNames": ["id"], "columns": [{"name": "id"}], "name": "my_table"}


def test_table_metadata_body_full():
    body = table_metadata_body(
        "go-client-test",
        [TableMetadataRequest("tableMetadata1", "value1"), TableMetadataRequest("tableMetadata2", "value2")],
        [
            ColumnMetadataRequest("first", "columnMetadata1", "value3"),
            ColumnMetadataRequest("second", "columnMetadata3", "value5"),
        ],
    )
    assert body == {
        "provider": "go-client-test",
        "metadata": [
            {"key": "tableMetadata1", "value": "value1"},
            {"key": "tableMetadata2", "value": "value2"},
        ],
        "columnsMetadata": {
            "all": [
                {"columnName": "first", "key": "columnMetadata1", "value": "value3"},
                {"columnName": "second", "key": "columnMetadata3", "value": "value5"},
            ]
        },
    }


def test_table_metadata_body_omits_empty():
    body = table_metadata_body("go-client-test", [TableMetadataRequest("tableMetadata3", "value3")], [])
    assert body == {"provider": "go-client-test", "metadata": [{"key": "tableMetadata3", "value": "value3"}]}


def test_decode_columns_metadata_empty_array():
    assert decode_columns_metadata("[]") == {}
    assert decode_columns_metadata(b"[]") == {}


def test_decode_columns_metadata_object():
    data = '{"first": [{"key": "columnMetadata1", "value": "value3", "provider": "go-client-test"}]}'
    assert decode_columns_metadata(data) == {
        "first": [{"key": "columnMetadata1", "value": "value3", "provider": "go-client-test"}]
    }


def test_decode_columns_metadata_invalid():
    with pytest.raises(ValueError):
        decode_columns_metadata("[1]")
    with pytest.raises(ValueError):
        decode_columns_metadata('{"first": "x"}')