"""geo_distance 查询编译模块.

根据字段映射把 GeoDistanceQueryBuilder 编译为 elasticsearch.dsl 查询对象。
"""

from __future__ import annotations

import logging
from typing import Any

from elasticsearch.dsl import Q

from geoflow.geo.exceptions import (
    GeoQueryShardError,
    InvalidGeoPointError,
    InvalidGeoQueryError,
)
from geoflow.geo.models import GeoQueryConfig, GeoValidationMethod
from geoflow.geo.query import DEFAULT_BOOST, NAME, GeoDistanceQueryBuilder
from geoflow.geo.schema import SchemaLookup

logger = logging.getLogger(__name__)


def compile_geo_distance_query(
    query: GeoDistanceQueryBuilder,
    schema_lookup: SchemaLookup,
    config: GeoQueryConfig | None = None,
) -> Q:
    """编译 geo_distance 查询.

    1. 查询字段映射（每次编译只查询一次）
    2. 字段未映射: ignore_unmapped 为 True 时返回 match_none，否则报错
    3. 字段不是地理坐标类型时报错
    4. 按校验方式处理中心点: STRICT 校验范围，COERCE 规整坐标，IGNORE_MALFORMED 原样使用
    5. 生成 geo_distance 查询

    查询描述对象本身不会被修改。

    Args:
        query: 已设置中心点和距离的查询描述对象
        schema_lookup: 字段映射查询
        config: 查询配置，默认为 GeoQueryConfig()

    Returns:
        elasticsearch.dsl 查询对象（GeoDistance 或 MatchNone）

    Raises:
        InvalidGeoQueryError: 中心点或距离未设置时抛出
        GeoQueryShardError: 字段未映射、字段类型不匹配或 STRICT 模式下坐标越界时抛出

    Examples:
        >>> lookup = MappingSchemaLookup({"properties": {"pin": {"type": "geo_point"}}})
        >>> query = GeoDistanceQueryBuilder("pin").set_point(40, -70).set_distance(12, DistanceUnit.KILOMETERS)
        >>> compile_geo_distance_query(query, lookup).to_dict()
        {'geo_distance': {'pin': {'lat': 40.0, 'lon': -70.0}, 'distance': 12000.0, 'distance_type': 'arc'}}
    """
    config = config or GeoQueryConfig()
    name = NAME

    if not query.is_ready():
        raise InvalidGeoQueryError(
            f"[{name}] query on field [{query.field_name}] requires both a point and a distance"
        )

    # 快照，编译过程中不再读取描述对象
    field_name = query.field_name
    point = query.point
    distance = query.distance
    validation_method = query.validation_method

    field_type = schema_lookup.get_field_type(field_name)
    if field_type is None:
        if query.ignore_unmapped:
            logger.info(f"字段 '{field_name}' 未映射，返回 match_none 查询")
            return Q("match_none")
        raise GeoQueryShardError(f"failed to find geo_point field [{field_name}]")

    if field_type not in config.geo_point_types:
        raise GeoQueryShardError(f"field [{field_name}] is not a geo_point field")

    if validation_method is GeoValidationMethod.STRICT:
        try:
            point.validate(name)
        except InvalidGeoPointError as e:
            raise GeoQueryShardError(
                f"couldn't validate latitude/ longitude values: {e}"
            ) from e
    elif validation_method.is_coerce():
        point = point.normalize()

    body: dict[str, Any] = {
        field_name: point.to_es_format(),
        "distance": distance,
        "distance_type": query.distance_type.value,
    }
    if query.boost != DEFAULT_BOOST:
        body["boost"] = query.boost
    if query.query_name is not None:
        body["_name"] = query.query_name

    logger.debug(f"编译 {name} 查询: field={field_name}, center={point}, distance={distance}m")
    return Q({name: body})
