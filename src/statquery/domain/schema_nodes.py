from pydantic import BaseModel, Field
from typing import List, Optional


class ColumnNode(BaseModel):
    """Represents a database column as reflected from information_schema."""

    column_name : str = Field(..., description="Name of the column")
    data_type : str = Field(..., description="Data type of the column")
    is_nullable : bool = Field(default=True, description="Indicates if the column can contain null values")
    is_primary_key : bool = Field(default=False, description="Indicates if the column is a primary key")

class RelationshipNode(BaseModel):
    """Represents a foreign key from a column of the owning table to another table."""

    from_column : str = Field(..., description="Column in the owning table")
    to_schema : str = Field(..., description="Schema of the referenced table")
    to_table : str = Field(..., description="Referenced table")
    to_column : str = Field(..., description="Referenced column")
    constraint_name : Optional[str] = Field(default=None, description="Foreign key constraint name")

class TableNode(BaseModel):
    """Represents a declared table with its reflected columns and foreign keys."""

    schema_name : str = Field(..., description="Schema to which the table belongs")
    table_name : str = Field(..., description="Name of the table")
    columns : List[ColumnNode] = Field(default_factory=list, description="Columns in ordinal order")
    foreign_keys : List[RelationshipNode] = Field(default_factory=list, description="Outgoing foreign keys")

class ReflectedSchema(BaseModel):
    """Schema description handed to the SQL generator as JSON."""

    description : str = Field(default="", description="Free-text description of the data domain")
    tables : List[TableNode] = Field(default_factory=list, description="Reflected tables")

    def to_prompt_json(self) -> str:
        """Serialize for prompting; empty optional fields are dropped to save tokens."""
        return self.model_dump_json(exclude_none=True)
