"""geoflow - Elasticsearch geo_distance 查询解析与编译工具包.

这是一个用于解析、校验和编译 Elasticsearch geo_distance 查询的 Python 库。

主要功能:
    - GeoDistanceQueryParser: 解析 geo_distance 查询体（兼容多种坐标和距离编码）
    - GeoDistanceQueryBuilder: geo_distance 查询描述对象
    - GeoQueryTool: 根据字段映射将查询体编译为 elasticsearch.dsl 查询

使用示例:
    from geoflow import GeoQueryTool, MappingSchemaLookup

    lookup = MappingSchemaLookup({"properties": {"pin": {"type": "geo_point"}}})
    tool = GeoQueryTool(lookup)
    query = tool.geo_distance_query({"distance": "12mi", "pin": [-70, 40]})
"""

__version__ = "0.1.0"

# 导出异常
from geoflow.exceptions import GeoFlowError

# 导出地理距离查询组件
from geoflow.geo import (
    DistanceUnit,
    GeoDistanceQueryBuilder,
    GeoDistanceQueryParser,
    GeoDistanceType,
    GeoPoint,
    GeoQueryConfig,
    GeoQueryError,
    GeoQueryParseError,
    GeoQueryShardError,
    GeoQueryTool,
    GeoValidationMethod,
    IndexSchemaLookup,
    InvalidGeoQueryError,
    MappingSchemaLookup,
    compile_geo_distance_query,
)

__all__ = [
    # 版本
    "__version__",
    # 工具与构建器
    "GeoQueryTool",
    "GeoDistanceQueryBuilder",
    "GeoDistanceQueryParser",
    "compile_geo_distance_query",
    # 字段映射
    "MappingSchemaLookup",
    "IndexSchemaLookup",
    # 数据模型
    "GeoPoint",
    "DistanceUnit",
    "GeoDistanceType",
    "GeoValidationMethod",
    "GeoQueryConfig",
    # 异常
    "GeoFlowError",
    "GeoQueryError",
    "InvalidGeoQueryError",
    "GeoQueryParseError",
    "GeoQueryShardError",
]
