"""地理距离查询工具核心模块.

提供 GeoQueryTool 类，把请求体解析和查询编译组合成一步操作。
"""

from __future__ import annotations

import logging
from typing import Any

from elasticsearch.dsl import Q

from geoflow.geo.compiler import compile_geo_distance_query
from geoflow.geo.models import (
    DEFAULT_DISTANCE_UNIT,
    DistanceUnit,
    GeoDistanceType,
    GeoPoint,
    GeoQueryConfig,
    GeoValidationMethod,
)
from geoflow.geo.parser import GeoDistanceQueryParser
from geoflow.geo.query import NAME, GeoDistanceQueryBuilder
from geoflow.geo.schema import SchemaLookup
from geoflow.typing import QueryBody, WarningSink

logger = logging.getLogger(__name__)


class GeoQueryTool:
    """地理距离查询工具.

    封装 geo_distance 查询的解析与编译，提供简洁易用的 Python API。

    Args:
        schema_lookup: 字段映射查询，用于编译时确认字段类型
        config: 查询配置，默认为 GeoQueryConfig()
        warning_sink: 弃用警告接收器

    Examples:
        >>> lookup = MappingSchemaLookup({"properties": {"pin": {"type": "geo_point"}}})
        >>> tool = GeoQueryTool(lookup)
        >>> tool.geo_distance_query({"distance": "12km", "pin": "40,-70"}).to_dict()
        {'geo_distance': {'pin': {'lat': 40.0, 'lon': -70.0}, 'distance': 12000.0, 'distance_type': 'arc'}}
    """

    def __init__(
        self,
        schema_lookup: SchemaLookup,
        config: GeoQueryConfig | None = None,
        warning_sink: WarningSink | None = None,
    ) -> None:
        self.schema_lookup = schema_lookup
        self.config = config or GeoQueryConfig()
        self.parser = GeoDistanceQueryParser(warning_sink=warning_sink, config=self.config)

    def parse(self, body: dict[str, Any]) -> GeoDistanceQueryBuilder:
        """解析查询体.

        同时接受 {"geo_distance": {...}} 外层格式和内层对象。
        """
        if isinstance(body, dict) and list(body) == [NAME] and isinstance(body[NAME], dict):
            return self.parser.parse_wrapped(body)
        return self.parser.parse(body)

    def compile(self, query: GeoDistanceQueryBuilder) -> Q:
        return compile_geo_distance_query(query, self.schema_lookup, self.config)

    def geo_distance_query(self, body: QueryBody) -> Q:
        """解析并编译 geo_distance 查询.

        Raises:
            GeoQueryParseError: 查询体结构不合法时抛出
            InvalidGeoQueryError: 查询参数不合法时抛出
            GeoQueryShardError: 字段未映射或类型不匹配时抛出
        """
        query = self.parse(body)
        logger.debug(f"geo_distance 查询解析完成，字段: {query.field_name}")
        return self.compile(query)

    def geo_distance_filter(
        self,
        field_name: str,
        center: GeoPoint,
        distance: float | str,
        unit: DistanceUnit = DEFAULT_DISTANCE_UNIT,
        distance_type: GeoDistanceType = GeoDistanceType.ARC,
        validation_method: GeoValidationMethod = GeoValidationMethod.STRICT,
    ) -> Q:
        """以编程方式构建并编译 geo_distance 查询.

        Args:
            field_name: 地理字段名
            center: 中心坐标点
            distance: 查询距离，数值或带单位后缀的字符串（如 "5km"）
            unit: 距离单位，默认为米；字符串距离中的后缀单位优先
            distance_type: 距离计算算法，默认为 arc
            validation_method: 坐标校验方式，默认为 STRICT

        Examples:
            >>> tool.geo_distance_filter("pin", GeoPoint(lat=39.9042, lon=116.4074), 5, DistanceUnit.KILOMETERS)
        """
        query = (
            GeoDistanceQueryBuilder(field_name)
            .set_point(center.lat, center.lon)
            .set_distance(distance, unit)
            .set_distance_type(distance_type)
            .set_validation_method(validation_method)
        )
        return self.compile(query)
