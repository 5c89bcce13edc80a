from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field, replace

from ..models.records import ImportSchema

"""Per-schema keyword tables.

Each import flow is described by one SchemaDefinition: which keywords
identify the header row, which substrings identify each semantic field's
column, and which fields must resolve. Header text is matched lowercased, so
every keyword here is lowercase.
"""

__all__ = [
    "STORE",
    "BRAND",
    "CATEGORY",
    "UNITS",
    "REVENUE",
    "SALES_COUNT",
    "PERIOD",
    "TARGET",
    "DELINQUENCY",
    "SchemaDefinition",
    "PERFORMANCE_SCHEMA",
    "PRODUCT_SCHEMA",
    "get_schema_definition",
]

STORE = "store"
BRAND = "brand"
CATEGORY = "category"
UNITS = "units"
REVENUE = "revenue"
SALES_COUNT = "sales_count"
PERIOD = "period"
TARGET = "target"
DELINQUENCY = "delinquency"

_PERIOD_KEYWORDS = (
    "mês/ano",
    "mes/ano",
    "mês ref",
    "mes ref",
    "mês de ref",
    "mes de ref",
    "período",
    "periodo",
    "competência",
    "competencia",
)


@dataclass(frozen=True)
class SchemaDefinition:
    schema: ImportSchema
    table: str
    field_keywords: Mapping[str, tuple[str, ...]]
    required: tuple[str, ...]
    # each group needs at least one resolved field, e.g. units OR revenue
    required_any: tuple[tuple[str, ...], ...] = ()
    # header row needs one keyword from each group; a group is the union of
    # the listed fields' keywords plus its extra keywords
    header_fields: tuple[tuple[str, ...], ...] = ()
    header_extra_keywords: tuple[tuple[str, ...], ...] = field(default_factory=tuple)
    # a row that also matches these groups beats an earlier row that only
    # matches the header groups
    preferred_header_fields: tuple[tuple[str, ...], ...] = ()
    # field -> fields whose columns (and keywords) it must not take
    field_excludes: Mapping[str, tuple[str, ...]] = field(default_factory=dict)

    @property
    def fields(self) -> tuple[str, ...]:
        return tuple(self.field_keywords)

    def _keyword_groups(
        self, fields: tuple[tuple[str, ...], ...], extras: tuple[tuple[str, ...], ...] = ()
    ) -> tuple[tuple[str, ...], ...]:
        groups: list[tuple[str, ...]] = []
        for i, names in enumerate(fields):
            keywords: list[str] = []
            for name in names:
                keywords.extend(self.field_keywords[name])
            if i < len(extras):
                keywords.extend(extras[i])
            groups.append(tuple(dict.fromkeys(keywords)))
        return tuple(groups)

    @property
    def header_groups(self) -> tuple[tuple[str, ...], ...]:
        return self._keyword_groups(self.header_fields, self.header_extra_keywords)

    @property
    def preferred_header_groups(self) -> tuple[tuple[str, ...], ...]:
        return self._keyword_groups(self.preferred_header_fields)

    def excluded_keywords(self, name: str) -> tuple[str, ...]:
        """Keywords of every field that `name` must stay clear of."""
        keywords: list[str] = []
        for other in self.field_excludes.get(name, ()):
            keywords.extend(self.field_keywords[other])
        return tuple(dict.fromkeys(keywords))

    def with_overrides(self, overrides: Mapping[str, Sequence[str]] | None) -> SchemaDefinition:
        """Return a copy with some fields' keyword lists replaced."""
        if not overrides:
            return self
        unknown = sorted(set(overrides) - set(self.field_keywords))
        if unknown:
            raise ValueError(f"unknown fields for schema '{self.schema.value}': {unknown}")
        merged = dict(self.field_keywords)
        for name, keywords in overrides.items():
            cleaned = tuple(k.strip().lower() for k in keywords if k and k.strip())
            if not cleaned:
                raise ValueError(f"empty keyword list for field '{name}'")
            merged[name] = cleaned
        return replace(self, field_keywords=merged)


PERFORMANCE_SCHEMA = SchemaDefinition(
    schema=ImportSchema.PERFORMANCE,
    table="monthly_performance",
    field_keywords={
        STORE: ("loja", "filial", "unidade"),
        REVENUE: ("valor", "realizado", "faturamento", "receita", "venda total", "vendido"),
        UNITS: ("itens", "peças", "pecas", "pares", "qtde", "quantidade"),
        SALES_COUNT: ("vendas", "atendimentos", "cupons", "tickets"),
        TARGET: ("meta", "objetivo"),
        DELINQUENCY: ("inadimpl",),
        PERIOD: _PERIOD_KEYWORDS,
    },
    required=(STORE, REVENUE),
    header_fields=((STORE,),),
    preferred_header_fields=((REVENUE, UNITS),),
    field_excludes={
        # "Itens Vendidos" is a units column
        REVENUE: (UNITS,),
        PERIOD: (REVENUE, UNITS, SALES_COUNT, TARGET, DELINQUENCY),
    },
)

PRODUCT_SCHEMA = SchemaDefinition(
    schema=ImportSchema.PRODUCT,
    table="product_performance",
    field_keywords={
        STORE: ("loja", "filial"),
        BRAND: ("marca", "fabricante"),
        CATEGORY: ("categoria", "grupo"),
        UNITS: ("pares", "qtde", "quantidade"),
        REVENUE: ("valor", "total", "faturamento"),
        PERIOD: _PERIOD_KEYWORDS,
    },
    required=(STORE, BRAND),
    required_any=((UNITS, REVENUE),),
    header_fields=((STORE,), (BRAND,)),
    header_extra_keywords=((), ("produto",)),
    field_excludes={
        REVENUE: (UNITS,),
        PERIOD: (REVENUE, UNITS),
    },
)

_DEFINITIONS = {
    ImportSchema.PERFORMANCE: PERFORMANCE_SCHEMA,
    ImportSchema.PRODUCT: PRODUCT_SCHEMA,
}


def get_schema_definition(
    schema: ImportSchema, overrides: Mapping[str, Sequence[str]] | None = None
) -> SchemaDefinition:
    return _DEFINITIONS[schema].with_overrides(overrides)
