"""地理距离查询数据模型模块.

提供距离单位（DistanceUnit）、坐标校验方式（GeoValidationMethod）、
距离算法（GeoDistanceType）、地理坐标点（GeoPoint）和查询配置（GeoQueryConfig）。
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass
from enum import Enum

from geoflow.geo import geohash
from geoflow.geo.exceptions import (
    GeoQueryConfigError,
    GeoQueryParseError,
    InvalidGeoPointError,
)

# 十进制数字（不接受 nan、inf、下划线分隔等写法）
_NUMBER_PATTERN = re.compile(r"[+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?")


def parse_number(text: str) -> float:
    """将十进制数字字符串解析为 float.

    Raises:
        GeoQueryParseError: 字符串不是合法的十进制数字或超出 float 范围时抛出
    """
    stripped = text.strip()
    if not _NUMBER_PATTERN.fullmatch(stripped):
        raise GeoQueryParseError(f"failed to parse number [{text}]")
    value = float(stripped)
    # "1e400" 之类溢出为 inf
    if not math.isfinite(value):
        raise GeoQueryParseError(f"failed to parse number [{text}], value is not finite")
    return value


class DistanceUnit(str, Enum):
    """距离单位枚举.

    枚举值为单位的主后缀。声明顺序决定后缀匹配顺序：
    "km"、"mm"、"cm" 必须先于 "m" 参与匹配。

    Attributes:
        INCH: 英寸 ("in")
        YARD: 码 ("yd")
        FEET: 英尺 ("ft")
        KILOMETERS: 千米 ("km")
        NAUTICALMILES: 海里 ("NM")
        MILLIMETERS: 毫米 ("mm")
        CENTIMETERS: 厘米 ("cm")
        MILES: 英里 ("mi")
        METERS: 米 ("m")，默认单位
    """

    INCH = "in"
    YARD = "yd"
    FEET = "ft"
    KILOMETERS = "km"
    NAUTICALMILES = "NM"
    MILLIMETERS = "mm"
    CENTIMETERS = "cm"
    MILES = "mi"
    METERS = "m"

    @property
    def meters(self) -> float:
        """一个单位对应的米数."""
        return _UNIT_METERS[self]

    @property
    def names(self) -> tuple[str, ...]:
        """单位可识别的全部名称，主后缀在前."""
        return _UNIT_NAMES[self]

    def to_meters(self, value: float) -> float:
        return value * self.meters

    def from_meters(self, value: float) -> float:
        return value / self.meters

    @classmethod
    def default(cls) -> DistanceUnit:
        return DEFAULT_DISTANCE_UNIT

    @classmethod
    def from_string(cls, name: str) -> DistanceUnit:
        """根据单位名称查找单位（大小写敏感）.

        Raises:
            GeoQueryParseError: 名称无法匹配任何单位时抛出
        """
        for unit in cls:
            if name in unit.names:
                return unit
        raise GeoQueryParseError(f"No distance unit match [{name}]")

    @classmethod
    def parse(cls, text: str, default_unit: DistanceUnit) -> tuple[float, DistanceUnit]:
        """解析带可选单位后缀的距离字符串.

        按声明顺序查找第一个作为后缀出现的单位名称，后缀单位优先于 default_unit；
        没有后缀时整个字符串必须是数字，使用 default_unit。

        Examples:
            >>> DistanceUnit.parse("12mi", DistanceUnit.KILOMETERS)
            (12.0, <DistanceUnit.MILES: 'mi'>)
            >>> DistanceUnit.parse("12", DistanceUnit.KILOMETERS)
            (12.0, <DistanceUnit.KILOMETERS: 'km'>)

        Returns:
            (数值, 单位)

        Raises:
            GeoQueryParseError: 数值部分无法解析时抛出
        """
        stripped = text.strip()
        for unit in cls:
            for name in unit.names:
                if stripped.endswith(name):
                    return cls._parse_value(stripped[: -len(name)], text), unit
        return cls._parse_value(stripped, text), default_unit

    @staticmethod
    def _parse_value(number: str, text: str) -> float:
        try:
            return parse_number(number)
        except GeoQueryParseError as e:
            raise GeoQueryParseError(f"failed to parse distance [{text}]") from e


# 各单位到米的换算系数
_UNIT_METERS: dict[DistanceUnit, float] = {
    DistanceUnit.INCH: 0.0254,
    DistanceUnit.YARD: 0.9144,
    DistanceUnit.FEET: 0.3048,
    DistanceUnit.KILOMETERS: 1000.0,
    DistanceUnit.NAUTICALMILES: 1852.0,
    DistanceUnit.MILLIMETERS: 0.001,
    DistanceUnit.CENTIMETERS: 0.01,
    DistanceUnit.MILES: 1609.344,
    DistanceUnit.METERS: 1.0,
}

# 各单位可识别的名称
_UNIT_NAMES: dict[DistanceUnit, tuple[str, ...]] = {
    DistanceUnit.INCH: ("in", "inch"),
    DistanceUnit.YARD: ("yd", "yards"),
    DistanceUnit.FEET: ("ft", "feet"),
    DistanceUnit.KILOMETERS: ("km", "kilometers"),
    DistanceUnit.NAUTICALMILES: ("NM", "nmi", "nauticalmiles"),
    DistanceUnit.MILLIMETERS: ("mm", "millimeters"),
    DistanceUnit.CENTIMETERS: ("cm", "centimeters"),
    DistanceUnit.MILES: ("mi", "miles"),
    DistanceUnit.METERS: ("m", "meters"),
}

DEFAULT_DISTANCE_UNIT = DistanceUnit.METERS


class GeoValidationMethod(str, Enum):
    """坐标校验方式."""

    STRICT = "STRICT"  # 经纬度越界时报错
    COERCE = "COERCE"  # 将越界坐标规整到合法范围
    IGNORE_MALFORMED = "IGNORE_MALFORMED"  # 原样接受越界坐标

    @classmethod
    def default(cls) -> GeoValidationMethod:
        return cls.STRICT

    @classmethod
    def from_string(cls, value: str) -> GeoValidationMethod:
        """按名称查找校验方式（大小写不敏感）."""
        if isinstance(value, str):
            for method in cls:
                if method.value == value.upper():
                    return method
        raise GeoQueryParseError(f"No validation method match [{value}]")

    def is_coerce(self) -> bool:
        return self is GeoValidationMethod.COERCE

    def is_ignore_malformed(self) -> bool:
        """COERCE 同样跳过严格的范围校验."""
        return self is not GeoValidationMethod.STRICT


class GeoDistanceType(str, Enum):
    """距离计算算法."""

    ARC = "arc"  # 弧形，更精确
    PLANE = "plane"  # 平面，更快速
    SLOPPY_ARC = "sloppy_arc"

    @classmethod
    def default(cls) -> GeoDistanceType:
        return cls.ARC

    @classmethod
    def from_string(cls, value: str) -> GeoDistanceType:
        """按名称查找距离算法（大小写不敏感）."""
        if isinstance(value, str):
            for distance_type in cls:
                if distance_type.value == value.lower():
                    return distance_type
        raise GeoQueryParseError(f"No geo distance for [{value}]")


def _centered_modulus(dividend: float, divisor: float) -> float:
    rtn = math.fmod(dividend, divisor)
    if rtn <= 0:
        rtn += divisor
    if rtn > divisor / 2:
        rtn -= divisor
    return rtn


@dataclass(frozen=True)
class GeoPoint:
    """地理坐标点数据模型.

    创建时不校验经纬度范围，范围校验推迟到查询编译阶段，由校验方式决定。

    Attributes:
        lat: 纬度
        lon: 经度

    Examples:
        >>> point = GeoPoint(lat=39.9042, lon=116.4074)
        >>> point.to_es_format()
        {'lat': 39.9042, 'lon': 116.4074}
        >>> point.to_array()
        [116.4074, 39.9042]
        >>> GeoPoint(lat=100.0, lon=190.0).normalize()
        GeoPoint(lat=80.0, lon=10.0)
    """

    lat: float
    lon: float

    @classmethod
    def from_geohash(cls, code: str) -> GeoPoint:
        lat, lon = geohash.decode(code)
        return cls(lat=lat, lon=lon)

    def is_valid(self) -> bool:
        return _is_valid_latitude(self.lat) and _is_valid_longitude(self.lon)

    def validate(self, query_name: str = "geo_distance") -> None:
        """校验经纬度范围.

        Raises:
            InvalidGeoPointError: 纬度不在 [-90, 90] 或经度不在 [-180, 180] 时抛出
        """
        if not _is_valid_latitude(self.lat):
            raise InvalidGeoPointError(
                f"illegal latitude value [{self.lat}] for [{query_name}]"
            )
        if not _is_valid_longitude(self.lon):
            raise InvalidGeoPointError(
                f"illegal longitude value [{self.lon}] for [{query_name}]"
            )

    def normalize(self) -> GeoPoint:
        """将越界坐标规整到合法范围，返回新的坐标点.

        纬度越过极点时按极点反射，同时经度旋转 180 度；经度回绕到 (-180, 180]。
        合法坐标和非有限值原样返回。
        """
        if self.is_valid() or not (math.isfinite(self.lat) and math.isfinite(self.lon)):
            return self

        lat = _centered_modulus(self.lat, 360)
        lon = self.lon
        if lat < -90:
            lat = -180 - lat
            lon += 180
        elif lat > 90:
            lat = 180 - lat
            lon += 180
        lon = _centered_modulus(lon, 360)
        return GeoPoint(lat=lat, lon=lon)

    def geohash(self, precision: int = geohash.MAX_PRECISION) -> str:
        return geohash.encode(self.lat, self.lon, precision)

    def to_es_format(self) -> dict[str, float]:
        """转换为 Elasticsearch 对象格式，如 {"lat": 39.9042, "lon": 116.4074}."""
        return {"lat": self.lat, "lon": self.lon}

    def to_array(self) -> list[float]:
        """转换为 Elasticsearch 数组格式，注意顺序为 [lon, lat]."""
        return [self.lon, self.lat]

    def to_string(self) -> str:
        """转换为 "lat,lon" 格式的字符串."""
        return f"{self.lat},{self.lon}"


def _is_valid_latitude(lat: float) -> bool:
    return math.isfinite(lat) and -90 <= lat <= 90


def _is_valid_longitude(lon: float) -> bool:
    return math.isfinite(lon) and -180 <= lon <= 180


@dataclass
class GeoQueryConfig:
    """地理距离查询配置模型.

    Attributes:
        geo_point_types: 视为地理坐标点的字段映射类型，默认 ("geo_point",)
        log_deprecations: 是否将弃用警告写入日志，默认 True

    Raises:
        GeoQueryConfigError: 当参数不合法时抛出

    Examples:
        >>> config = GeoQueryConfig(log_deprecations=False)
    """

    geo_point_types: tuple[str, ...] = ("geo_point",)
    log_deprecations: bool = True

    def __post_init__(self) -> None:
        """校验配置参数合法性."""
        if not self.geo_point_types:
            raise GeoQueryConfigError("geo_point_types 不能为空，请提供至少一个字段类型")
