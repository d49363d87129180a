"""geo_distance 请求体解析模块.

将反序列化后的查询体（dict/list/标量组成的树）解析为 GeoDistanceQueryBuilder。

支持的坐标编码:
    - 对象: {"lat": 40, "lon": -70}（也接受 latitude/longitude 或 geohash 成员）
    - 数组: [-70, 40]，顺序为 [lon, lat]
    - 字符串: "40,-70"，顺序为 "lat,lon"
    - 不含逗号的字符串: geohash，如 "drn5x1g8cu2y"

支持的距离编码:
    - 数值: 12，配合 unit 参数（缺省为米）
    - 字符串: "12" 或 "12mi"，后缀单位优先于 unit 参数
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Any

from geoflow.geo.exceptions import GeoQueryParseError
from geoflow.geo.models import (
    DEFAULT_DISTANCE_UNIT,
    DistanceUnit,
    GeoDistanceType,
    GeoPoint,
    GeoQueryConfig,
    GeoValidationMethod,
    parse_number,
)
from geoflow.geo.query import DEFAULT_BOOST, NAME, GeoDistanceQueryBuilder
from geoflow.typing import JsonValue, PointEncoding, QueryBody, WarningSink

logger = logging.getLogger(__name__)

DISTANCE_FIELD = "distance"
UNIT_FIELD = "unit"
DISTANCE_TYPE_FIELD = "distance_type"
VALIDATION_METHOD_FIELD = "validation_method"
IGNORE_UNMAPPED_FIELD = "ignore_unmapped"
BOOST_FIELD = "boost"
NAME_FIELD = "_name"

# 弃用参数及其替代说明
OPTIMIZE_BBOX_FIELD = "optimize_bbox"
COERCE_FIELD = "coerce"
IGNORE_MALFORMED_FIELD = "ignore_malformed"
DEPRECATED_FIELDS: dict[str, str] = {
    OPTIMIZE_BBOX_FIELD: (
        "no replacement: `optimize_bbox` is no longer supported due to recent improvements"
    ),
    COERCE_FIELD: VALIDATION_METHOD_FIELD,
    IGNORE_MALFORMED_FIELD: VALIDATION_METHOD_FIELD,
}

# 坐标对象成员
LAT_FIELDS = ("lat", "latitude")
LON_FIELDS = ("lon", "longitude")
GEOHASH_FIELD = "geohash"

# "pin.lat": 40 这类按分量给出坐标的键
_COMPONENT_SUFFIXES = {".lat": "lat", ".lon": "lon", ".geohash": GEOHASH_FIELD}

_MISSING: Any = object()


@dataclass
class ParseResult:
    """解析结果.

    Attributes:
        query: 解析得到的查询描述对象
        warnings: 弃用警告列表，按参数出现顺序排列
    """

    query: GeoDistanceQueryBuilder
    warnings: list[str] = field(default_factory=list)


def deprecation_message(field_name: str, replacement: str) -> str:
    return f"Deprecated field [{field_name}] used, replaced by [{replacement}]"


def migrate_deprecated_options(
    legacy: dict[str, JsonValue],
) -> tuple[dict[str, Any], list[str]]:
    """将弃用参数迁移为新参数.

    - optimize_bbox: 无替代参数，仅产生警告
    - coerce: 为 true 时映射为 validation_method=COERCE
    - ignore_malformed: 为 true 时映射为 validation_method=IGNORE_MALFORMED，
      coerce 同时为 true 时以 COERCE 为准

    Args:
        legacy: 出现的弃用参数，按出现顺序排列

    Returns:
        (需要更新的新参数, 警告列表)，每个弃用参数对应一条警告

    Raises:
        GeoQueryParseError: coerce / ignore_malformed 不是布尔值时抛出
    """
    updates: dict[str, Any] = {}
    warnings: list[str] = []

    for key, value in legacy.items():
        warnings.append(deprecation_message(key, DEPRECATED_FIELDS[key]))
        if key == COERCE_FIELD and _parse_boolean(key, value):
            updates[VALIDATION_METHOD_FIELD] = GeoValidationMethod.COERCE
        elif key == IGNORE_MALFORMED_FIELD and _parse_boolean(key, value):
            updates.setdefault(VALIDATION_METHOD_FIELD, GeoValidationMethod.IGNORE_MALFORMED)

    return updates, warnings


def decode_geo_point(value: PointEncoding) -> GeoPoint:
    """按编码形状解析坐标点.

    Raises:
        GeoQueryParseError: 无法识别的坐标编码时抛出
    """
    if isinstance(value, dict):
        return _decode_object(value)
    if isinstance(value, (list, tuple)):
        return _decode_array(value)
    if isinstance(value, str):
        if "," in value:
            return _decode_lat_lon_string(value)
        return _decode_geohash(value)
    raise GeoQueryParseError(
        f"geo_point expected an object, an array or a string, got [{value!r}]"
    )


def _decode_object(value: dict[str, JsonValue]) -> GeoPoint:
    lat: float | None = None
    lon: float | None = None
    code: str | None = None

    for key, member in value.items():
        if key in LAT_FIELDS:
            if lat is not None:
                raise GeoQueryParseError("geo_point latitude specified more than once")
            lat = _coerce_double(key, member)
        elif key in LON_FIELDS:
            if lon is not None:
                raise GeoQueryParseError("geo_point longitude specified more than once")
            lon = _coerce_double(key, member)
        elif key == GEOHASH_FIELD:
            if not isinstance(member, str):
                raise GeoQueryParseError(f"field [{GEOHASH_FIELD}] must be a string")
            code = member
        else:
            raise GeoQueryParseError("field must be either [lat], [lon] or [geohash]")

    if code is not None:
        if lat is not None or lon is not None:
            raise GeoQueryParseError(
                "field must be either lat/lon or geohash, not both"
            )
        return _decode_geohash(code)
    if lat is None:
        raise GeoQueryParseError("field [lat] missing")
    if lon is None:
        raise GeoQueryParseError("field [lon] missing")
    return GeoPoint(lat=lat, lon=lon)


def _decode_array(value: list[JsonValue] | tuple[JsonValue, ...]) -> GeoPoint:
    if len(value) != 2:
        raise GeoQueryParseError(
            f"geo_point array must contain exactly two values [lon, lat], got [{len(value)}]"
        )
    for member in value:
        if isinstance(member, bool) or not isinstance(member, (int, float)):
            raise GeoQueryParseError(f"geo_point array expects numeric values, got [{member!r}]")
    # 数组顺序为 [lon, lat]，与对象和字符串格式相反
    lon = _finite_float("lon", value[0])
    lat = _finite_float("lat", value[1])
    return GeoPoint(lat=lat, lon=lon)


def _decode_lat_lon_string(value: str) -> GeoPoint:
    parts = value.split(",")
    if len(parts) != 2:
        raise GeoQueryParseError(
            f"failed to parse [{value}], expected 2 coordinates but found: [{len(parts)}]"
        )
    try:
        lat = parse_number(parts[0])
        lon = parse_number(parts[1])
    except GeoQueryParseError as e:
        raise GeoQueryParseError(f"failed to parse geo_point [{value}]") from e
    return GeoPoint(lat=lat, lon=lon)


def _decode_geohash(value: str) -> GeoPoint:
    if not value.strip():
        raise GeoQueryParseError("geohash must not be null or empty")
    return GeoPoint.from_geohash(value.strip())


def _coerce_double(key: str, value: JsonValue) -> float:
    if isinstance(value, bool):
        raise GeoQueryParseError(f"[{key}] must be a number, got [{value!r}]")
    if isinstance(value, (int, float)):
        return _finite_float(key, value)
    if isinstance(value, str):
        return parse_number(value)
    raise GeoQueryParseError(f"[{key}] must be a number, got [{value!r}]")


def _finite_float(key: str, value: int | float) -> float:
    try:
        number = float(value)
    except OverflowError:
        number = math.inf
    if not math.isfinite(number):
        raise GeoQueryParseError(f"[{key}] must be a finite number, got [{value!r}]")
    return number


def _parse_boolean(key: str, value: JsonValue) -> bool:
    if isinstance(value, bool):
        return value
    if value == "true":
        return True
    if value == "false":
        return False
    raise GeoQueryParseError(f"[{key}] must be a boolean, got [{value!r}]")


def _expect_string(key: str, value: JsonValue) -> str:
    if not isinstance(value, str):
        raise GeoQueryParseError(f"[{key}] must be a string, got [{value!r}]")
    return value


def _split_component(key: str, value: JsonValue) -> tuple[str, str] | None:
    """识别 "pin.lat" 这类分量键，只对标量值生效."""
    if isinstance(value, (dict, list)):
        return None
    for suffix, component in _COMPONENT_SUFFIXES.items():
        if key.endswith(suffix) and len(key) > len(suffix):
            return key[: -len(suffix)], component
    return None


class GeoDistanceQueryParser:
    """geo_distance 查询体解析器.

    Args:
        warning_sink: 弃用警告接收器，每条警告调用一次
        config: 查询配置，默认为 GeoQueryConfig()

    Examples:
        >>> parser = GeoDistanceQueryParser()
        >>> query = parser.parse({"distance": "12mi", "pin": {"lat": 40, "lon": -70}})
        >>> query.point
        GeoPoint(lat=40.0, lon=-70.0)
    """

    def __init__(
        self,
        warning_sink: WarningSink | None = None,
        config: GeoQueryConfig | None = None,
    ) -> None:
        self.warning_sink = warning_sink
        self.config = config or GeoQueryConfig()

    def parse(self, node: QueryBody) -> GeoDistanceQueryBuilder:
        return self.parse_with_warnings(node).query

    def parse_wrapped(self, data: dict[str, Any]) -> GeoDistanceQueryBuilder:
        """解析带外层键的查询，如 {"geo_distance": {...}}."""
        name = NAME
        if not isinstance(data, dict) or list(data) != [name]:
            raise GeoQueryParseError(f"expected a single [{name}] query object")
        return self.parse(data[name])

    def parse_with_warnings(self, node: QueryBody) -> ParseResult:
        """解析查询体并返回弃用警告.

        解析失败时不会返回部分结果，也不会产生警告。

        Raises:
            GeoQueryParseError: 查询体结构不合法时抛出
            InvalidGeoQueryError: 字段名为空、距离 ≤ 0 等参数错误时抛出
        """
        name = NAME
        if not isinstance(node, dict):
            raise GeoQueryParseError(f"[{name}] query malformed, expected an object")

        field_name: str | None = None
        encoding: JsonValue = _MISSING
        components: dict[str, JsonValue] = {}
        distance: JsonValue = _MISSING
        unit = DEFAULT_DISTANCE_UNIT
        distance_type: GeoDistanceType | None = None
        validation_method: GeoValidationMethod | None = None
        ignore_unmapped = False
        boost = DEFAULT_BOOST
        query_name: str | None = None
        legacy: dict[str, JsonValue] = {}

        for key, value in node.items():
            if key == DISTANCE_FIELD:
                distance = value
            elif key == UNIT_FIELD:
                unit = DistanceUnit.from_string(_expect_string(key, value))
            elif key == DISTANCE_TYPE_FIELD:
                distance_type = GeoDistanceType.from_string(value)
            elif key == VALIDATION_METHOD_FIELD:
                validation_method = GeoValidationMethod.from_string(value)
            elif key == IGNORE_UNMAPPED_FIELD:
                ignore_unmapped = _parse_boolean(key, value)
            elif key == BOOST_FIELD:
                boost = _coerce_double(key, value)
            elif key == NAME_FIELD:
                query_name = _expect_string(key, value)
            elif key in DEPRECATED_FIELDS:
                legacy[key] = value
            else:
                component = _split_component(key, value)
                target = component[0] if component else key
                if field_name is not None and field_name != target:
                    raise GeoQueryParseError(
                        f"[{name}] query doesn't support multiple fields, "
                        f"found [{field_name}] and [{target}]"
                    )
                field_name = target
                if component:
                    components[component[1]] = value
                else:
                    encoding = value

        if distance is _MISSING:
            raise GeoQueryParseError(f"{name} requires '{DISTANCE_FIELD}' to be specified")
        if field_name is None:
            raise GeoQueryParseError(f"[{name}] query requires a geo_point field")
        if encoding is not _MISSING and components:
            raise GeoQueryParseError(
                f"[{name}] point for field [{field_name}] specified more than once"
            )

        query = GeoDistanceQueryBuilder(field_name)
        point = decode_geo_point(components if encoding is _MISSING else encoding)
        query.set_point(point.lat, point.lon)

        if isinstance(distance, bool) or not isinstance(distance, (int, float, str)):
            raise GeoQueryParseError(
                f"[{name}] {DISTANCE_FIELD} must be a number or a string, got [{distance!r}]"
            )
        query.set_distance(distance, unit)

        if distance_type is not None:
            query.set_distance_type(distance_type)

        updates, warnings = migrate_deprecated_options(legacy)
        if validation_method is None:
            validation_method = updates.get(VALIDATION_METHOD_FIELD)
        if validation_method is not None:
            query.set_validation_method(validation_method)

        query.set_ignore_unmapped(ignore_unmapped)
        query.set_boost(boost)
        query.set_query_name(query_name)

        self._emit_warnings(warnings)
        logger.debug(f"解析 {name} 查询完成: {query!r}")
        return ParseResult(query=query, warnings=warnings)

    def _emit_warnings(self, warnings: list[str]) -> None:
        for message in warnings:
            if self.config.log_deprecations:
                logger.warning(message)
            if self.warning_sink is not None:
                self.warning_sink(message)
