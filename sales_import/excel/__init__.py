from .columns import FieldMap, MissingRequiredColumnsError, map_columns
from .header import HeaderNotFoundError, locate_header
from .keywords import PERFORMANCE_SCHEMA, PRODUCT_SCHEMA, SchemaDefinition, get_schema_definition
from .reader import WorkbookReadError, read_first_sheet

__all__ = [
    "FieldMap",
    "HeaderNotFoundError",
    "MissingRequiredColumnsError",
    "PERFORMANCE_SCHEMA",
    "PRODUCT_SCHEMA",
    "SchemaDefinition",
    "WorkbookReadError",
    "get_schema_definition",
    "locate_header",
    "map_columns",
    "read_first_sheet",
]
