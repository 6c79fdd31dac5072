"""
Result layouts and row models for catalog listings.

Layouts follow the JDBC DatabaseMetaData column order so rows can be handed
straight to JDBC/ODBC style tooling.
"""

from pydantic import BaseModel, ConfigDict

ColumnLayout = tuple[tuple[str, str], ...]

CATALOG_COLUMNS: ColumnLayout = (("TABLE_CAT", "VARCHAR"),)

TABLE_TYPE_COLUMNS: ColumnLayout = (("TABLE_TYPE", "VARCHAR"),)

SCHEMA_COLUMNS: ColumnLayout = (
    ("TABLE_SCHEM", "VARCHAR"),
    ("TABLE_CATALOG", "VARCHAR"),
)

TABLE_COLUMNS: ColumnLayout = (
    ("TABLE_CAT", "VARCHAR"),
    ("TABLE_SCHEM", "VARCHAR"),
    ("TABLE_NAME", "VARCHAR"),
    ("TABLE_TYPE", "VARCHAR"),
    ("REMARKS", "VARCHAR"),
    ("TYPE_CAT", "VARCHAR"),
    ("TYPE_SCHEM", "VARCHAR"),
    ("TYPE_NAME", "VARCHAR"),
    ("SELF_REFERENCING_COL_NAME", "VARCHAR"),
    ("REF_GENERATION", "VARCHAR"),
)

COLUMN_COLUMNS: ColumnLayout = (
    ("TABLE_CAT", "VARCHAR"),
    ("TABLE_SCHEM", "VARCHAR"),
    ("TABLE_NAME", "VARCHAR"),
    ("COLUMN_NAME", "VARCHAR"),
    ("DATA_TYPE", "INTEGER"),
    ("TYPE_NAME", "VARCHAR"),
    ("COLUMN_SIZE", "INTEGER"),
    ("BUFFER_LENGTH", "INTEGER"),
    ("DECIMAL_DIGITS", "INTEGER"),
    ("NUM_PREC_RADIX", "INTEGER"),
    ("NULLABLE", "INTEGER"),
    ("REMARKS", "VARCHAR"),
    ("COLUMN_DEF", "VARCHAR"),
    ("SQL_DATA_TYPE", "INTEGER"),
    ("SQL_DATETIME_SUB", "INTEGER"),
    ("CHAR_OCTET_LENGTH", "INTEGER"),
    ("ORDINAL_POSITION", "INTEGER"),
    ("IS_NULLABLE", "VARCHAR"),
    ("SCOPE_CATALOG", "VARCHAR"),
    ("SCOPE_SCHEMA", "VARCHAR"),
    ("SCOPE_TABLE", "VARCHAR"),
    ("SOURCE_DATA_TYPE", "SMALLINT"),
    ("IS_AUTOINCREMENT", "VARCHAR"),
    ("IS_GENERATEDCOLUMN", "VARCHAR"),
)

# DatabaseMetaData.columnNoNulls / columnNullable
COLUMN_NO_NULLS = 0
COLUMN_NULLABLE = 1


class CatalogRow(BaseModel):
    model_config = ConfigDict(frozen=True)

    catalog: str

    def as_tuple(self) -> tuple:
        return (self.catalog,)


class TableTypeRow(BaseModel):
    model_config = ConfigDict(frozen=True)

    table_type: str

    def as_tuple(self) -> tuple:
        return (self.table_type,)


class SchemaRow(BaseModel):
    """A dataset listed by ``list_schemas``."""

    model_config = ConfigDict(frozen=True)

    schema_name: str
    catalog: str

    def as_tuple(self) -> tuple:
        return (self.schema_name, self.catalog)


class TableRow(BaseModel):
    """A table listed by ``list_tables``."""

    model_config = ConfigDict(frozen=True)

    catalog: str
    schema_name: str
    table_name: str
    table_type: str
    remarks: str | None = None

    def as_tuple(self) -> tuple:
        return (
            self.catalog,
            self.schema_name,
            self.table_name,
            self.table_type,
            self.remarks,
            None,  # TYPE_CAT
            None,  # TYPE_SCHEM
            None,  # TYPE_NAME
            None,  # SELF_REFERENCING_COL_NAME
            None,  # REF_GENERATION
        )


class ColumnRow(BaseModel):
    """A column listed by ``list_columns``."""

    model_config = ConfigDict(frozen=True)

    catalog: str
    schema_name: str
    table_name: str
    column_name: str
    data_type: int
    type_name: str
    column_size: int
    decimal_digits: int
    nullable: int
    remarks: str | None = None
    ordinal_position: int

    @property
    def is_nullable(self) -> str:
        return "YES" if self.nullable == COLUMN_NULLABLE else "NO"

    def as_tuple(self) -> tuple:
        return (
            self.catalog,
            self.schema_name,
            self.table_name,
            self.column_name,
            self.data_type,
            self.type_name,
            self.column_size,
            None,  # BUFFER_LENGTH
            self.decimal_digits,
            10,  # NUM_PREC_RADIX
            self.nullable,
            self.remarks,
            None,  # COLUMN_DEF
            None,  # SQL_DATA_TYPE
            None,  # SQL_DATETIME_SUB
            self.column_size,  # CHAR_OCTET_LENGTH
            self.ordinal_position,
            self.is_nullable,
            None,  # SCOPE_CATALOG
            None,  # SCOPE_SCHEMA
            None,  # SCOPE_TABLE
            None,  # SOURCE_DATA_TYPE
            "NO",  # IS_AUTOINCREMENT
            "NO",  # IS_GENERATEDCOLUMN
        )
