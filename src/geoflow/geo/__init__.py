"""地理距离查询模块.

解析 geo_distance 查询体、校验并规整参数，再根据字段映射编译为 elasticsearch.dsl 查询。

主要功能:
    - GeoDistanceQueryParser: 解析多种历史编码的查询体，迁移弃用参数并产生警告
    - GeoDistanceQueryBuilder: 查询描述对象，所有修改方法立即校验参数
    - compile_geo_distance_query: 根据字段映射编译为 GeoDistance / MatchNone 查询
    - GeoQueryTool: 解析与编译的组合工具

使用示例:
    from geoflow.geo import GeoQueryTool, MappingSchemaLookup

    lookup = MappingSchemaLookup({"properties": {"pin": {"type": "geo_point"}}})
    tool = GeoQueryTool(lookup)
    query = tool.geo_distance_query({"distance": "12mi", "pin": {"lat": 40, "lon": -70}})
"""

from geoflow.geo.compiler import compile_geo_distance_query
from geoflow.geo.exceptions import (
    GeoQueryConfigError,
    GeoQueryError,
    GeoQueryParseError,
    GeoQueryShardError,
    GeoSchemaLookupError,
    InvalidGeoHashError,
    InvalidGeoPointError,
    InvalidGeoQueryError,
)
from geoflow.geo.models import (
    DEFAULT_DISTANCE_UNIT,
    DistanceUnit,
    GeoDistanceType,
    GeoPoint,
    GeoQueryConfig,
    GeoValidationMethod,
)
from geoflow.geo.parser import (
    GeoDistanceQueryParser,
    ParseResult,
    decode_geo_point,
    migrate_deprecated_options,
)
from geoflow.geo.query import GeoDistanceQueryBuilder
from geoflow.geo.schema import IndexSchemaLookup, MappingSchemaLookup, SchemaLookup
from geoflow.geo.tool import GeoQueryTool

__all__ = [
    # 核心工具
    "GeoQueryTool",
    "GeoDistanceQueryBuilder",
    "GeoDistanceQueryParser",
    "ParseResult",
    "compile_geo_distance_query",
    "decode_geo_point",
    "migrate_deprecated_options",
    # 字段映射
    "SchemaLookup",
    "MappingSchemaLookup",
    "IndexSchemaLookup",
    # 数据模型
    "GeoPoint",
    "DistanceUnit",
    "DEFAULT_DISTANCE_UNIT",
    "GeoDistanceType",
    "GeoValidationMethod",
    "GeoQueryConfig",
    # 异常
    "GeoQueryError",
    "InvalidGeoQueryError",
    "GeoQueryParseError",
    "InvalidGeoHashError",
    "GeoQueryShardError",
    "InvalidGeoPointError",
    "GeoSchemaLookupError",
    "GeoQueryConfigError",
]
