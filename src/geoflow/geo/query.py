"""geo_distance 查询描述对象模块.

提供 GeoDistanceQueryBuilder：保存字段名、中心点、距离（统一换算为米）、
校验方式、距离算法等参数，所有修改方法都会立即校验参数。
"""

from __future__ import annotations

import math
from typing import TYPE_CHECKING, Any

from geoflow.geo.exceptions import InvalidGeoQueryError
from geoflow.geo.models import (
    DEFAULT_DISTANCE_UNIT,
    DistanceUnit,
    GeoDistanceType,
    GeoPoint,
    GeoQueryConfig,
    GeoValidationMethod,
)
from geoflow.typing import WarningSink

if TYPE_CHECKING:
    from elasticsearch.dsl import Q

    from geoflow.geo.schema import SchemaLookup

NAME = "geo_distance"
DEFAULT_BOOST = 1.0

# 区分「未传入单位」和「显式传入 None」
_UNSET: Any = object()


class GeoDistanceQueryBuilder:
    """geo_distance 查询描述对象.

    构造时只需要字段名，设置中心点和距离后即可编译为查询。

    Examples:
        >>> query = GeoDistanceQueryBuilder("pin").set_point(40, -70).set_distance("12mi")
        >>> query.distance
        19312.128
        >>> query.to_dsl()["geo_distance"]["pin"]
        [-70.0, 40.0]
    """

    def __init__(self, field_name: str) -> None:
        if not field_name:
            raise InvalidGeoQueryError("fieldName must not be null or empty")
        self._field_name = field_name
        self._point: GeoPoint | None = None
        self._distance: float | None = None
        self._distance_type = GeoDistanceType.default()
        self._validation_method = GeoValidationMethod.default()
        self._ignore_unmapped = False
        self._boost = DEFAULT_BOOST
        self._query_name: str | None = None

    # ========== 只读属性 ==========

    @property
    def field_name(self) -> str:
        return self._field_name

    @property
    def point(self) -> GeoPoint | None:
        return self._point

    @property
    def distance(self) -> float | None:
        """查询半径，单位为米."""
        return self._distance

    @property
    def distance_type(self) -> GeoDistanceType:
        return self._distance_type

    @property
    def validation_method(self) -> GeoValidationMethod:
        return self._validation_method

    @property
    def ignore_unmapped(self) -> bool:
        return self._ignore_unmapped

    @property
    def boost(self) -> float:
        return self._boost

    @property
    def query_name(self) -> str | None:
        return self._query_name

    def is_ready(self) -> bool:
        """中心点和距离均已设置时返回 True."""
        return self._point is not None and self._distance is not None

    # ========== 修改方法 ==========

    def set_point(self, lat: float, lon: float) -> GeoDistanceQueryBuilder:
        """设置中心点，不做范围校验（由编译阶段的校验方式决定）.

        Raises:
            InvalidGeoQueryError: 坐标不是有限数值时抛出
        """
        self._point = GeoPoint(lat=_to_coordinate("lat", lat), lon=_to_coordinate("lon", lon))
        return self

    def set_geohash(self, code: str) -> GeoDistanceQueryBuilder:
        """以 geohash 设置中心点.

        Raises:
            InvalidGeoQueryError: geohash 为空时抛出
            InvalidGeoHashError: geohash 包含非法字符时抛出
        """
        if not code:
            raise InvalidGeoQueryError("geohash must not be null or empty")
        self._point = GeoPoint.from_geohash(code)
        return self

    def set_distance(
        self,
        value: float | str,
        unit: DistanceUnit | None = _UNSET,
    ) -> GeoDistanceQueryBuilder:
        """设置查询半径.

        数值参数与 unit 组合换算；字符串参数可携带单位后缀（如 "12mi"），
        后缀单位总是优先于 unit。未传入 unit 时使用默认单位（米）。

        Args:
            value: 距离数值，或带可选单位后缀的距离字符串
            unit: 距离单位，不能显式传入 None

        Raises:
            InvalidGeoQueryError: 距离为空、单位为 None 或不是 DistanceUnit、距离 ≤ 0 或换算后超出 float 范围时抛出
            GeoQueryParseError: 距离字符串无法解析时抛出
        """
        if isinstance(value, str) or value is None:
            if not value:
                raise InvalidGeoQueryError("distance must not be null or empty")
            magnitude, parsed_unit = DistanceUnit.parse(value, _resolve_unit(unit))
            self._store_distance(magnitude, parsed_unit)
            return self

        resolved_unit = _resolve_unit(unit)
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise InvalidGeoQueryError(f"distance must be a number, got [{value!r}]")
        self._store_distance(_to_float(value), resolved_unit)
        return self

    def _store_distance(self, magnitude: float, unit: DistanceUnit) -> None:
        if not math.isfinite(magnitude):
            raise InvalidGeoQueryError(f"distance must be a finite number, got [{magnitude}]")
        if magnitude <= 0:
            raise InvalidGeoQueryError("distance must be greater than zero")
        meters = unit.to_meters(magnitude)
        if not math.isfinite(meters):
            raise InvalidGeoQueryError(
                f"distance [{magnitude}{unit.value}] is too large to be expressed in meters"
            )
        self._distance = meters

    def set_distance_type(self, distance_type: GeoDistanceType) -> GeoDistanceQueryBuilder:
        if distance_type is None:
            raise InvalidGeoQueryError("geoDistance must not be null")
        self._distance_type = distance_type
        return self

    def set_validation_method(self, method: GeoValidationMethod) -> GeoDistanceQueryBuilder:
        if method is None:
            raise InvalidGeoQueryError("validation method must not be null")
        self._validation_method = method
        return self

    def set_ignore_unmapped(self, ignore_unmapped: bool) -> GeoDistanceQueryBuilder:
        """字段未映射时是否返回不匹配任何文档的查询（而不是报错）."""
        self._ignore_unmapped = bool(ignore_unmapped)
        return self

    def set_boost(self, boost: float) -> GeoDistanceQueryBuilder:
        self._boost = float(boost)
        return self

    def set_query_name(self, query_name: str | None) -> GeoDistanceQueryBuilder:
        self._query_name = query_name
        return self

    # ========== 序列化与编译 ==========

    def to_dsl(self, query_name: str = NAME) -> dict[str, Any]:
        """序列化为 Elasticsearch DSL 字典.

        中心点使用 [lon, lat] 数组格式，距离为以米为单位的数值（不带单位后缀），
        弃用参数不会输出。

        Returns:
            如 {"geo_distance": {"pin": [-70.0, 40.0], "distance": 12000.0, ...}}

        Raises:
            InvalidGeoQueryError: 中心点或距离未设置时抛出
        """
        self._ensure_ready()
        body: dict[str, Any] = {
            self._field_name: self._point.to_array(),
            "distance": self._distance,
            "distance_type": self._distance_type.value,
            "validation_method": self._validation_method.value,
            "ignore_unmapped": self._ignore_unmapped,
            "boost": self._boost,
        }
        if self._query_name is not None:
            body["_name"] = self._query_name
        return {query_name: body}

    @classmethod
    def from_dsl(
        cls,
        data: dict[str, Any],
        warning_sink: WarningSink | None = None,
    ) -> GeoDistanceQueryBuilder:
        """从 {"geo_distance": {...}} 格式的 DSL 字典解析."""
        from geoflow.geo.parser import GeoDistanceQueryParser

        return GeoDistanceQueryParser(warning_sink=warning_sink).parse_wrapped(data)

    def to_query(
        self,
        schema_lookup: SchemaLookup,
        config: GeoQueryConfig | None = None,
    ) -> Q:
        """根据字段映射编译为可执行的查询对象，参见 compile_geo_distance_query."""
        from geoflow.geo.compiler import compile_geo_distance_query

        return compile_geo_distance_query(self, schema_lookup, config)

    def _ensure_ready(self) -> None:
        if not self.is_ready():
            raise InvalidGeoQueryError(
                f"[{NAME}] query on field [{self._field_name}] requires both a point and a distance"
            )

    def _key(self) -> tuple:
        return (
            self._field_name,
            self._point,
            self._distance,
            self._distance_type,
            self._validation_method,
            self._ignore_unmapped,
            self._boost,
            self._query_name,
        )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, GeoDistanceQueryBuilder):
            return NotImplemented
        return self._key() == other._key()

    def __repr__(self) -> str:
        return (
            f"GeoDistanceQueryBuilder(field_name={self._field_name!r}, "
            f"point={self._point!r}, distance={self._distance!r}, "
            f"distance_type={self._distance_type.value!r}, "
            f"validation_method={self._validation_method.value!r}, "
            f"ignore_unmapped={self._ignore_unmapped!r}, boost={self._boost!r}, "
            f"query_name={self._query_name!r})"
        )


def _resolve_unit(unit: DistanceUnit | None) -> DistanceUnit:
    if unit is _UNSET:
        return DEFAULT_DISTANCE_UNIT
    if unit is None:
        raise InvalidGeoQueryError("distance unit must not be null")
    if not isinstance(unit, DistanceUnit):
        raise InvalidGeoQueryError(f"distance unit must be a DistanceUnit, got [{unit!r}]")
    return unit


def _to_float(value: int | float) -> float:
    # 超出 float 范围的整数按 inf 处理，由调用方报错
    try:
        return float(value)
    except OverflowError:
        return math.inf


def _to_coordinate(name: str, value: float) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise InvalidGeoQueryError(f"{name} must be a number, got [{value!r}]")
    number = _to_float(value)
    if not math.isfinite(number):
        raise InvalidGeoQueryError(f"{name} must be a finite number, got [{value!r}]")
    return number
