"""地理距离查询异常定义模块."""

from geoflow.exceptions import GeoFlowError


class GeoQueryError(GeoFlowError):
    """地理距离查询基础异常."""

    pass


class InvalidGeoQueryError(GeoQueryError):
    """无效的查询参数异常（字段名为空、距离 ≤ 0、单位为空等）."""

    pass


class GeoQueryParseError(GeoQueryError):
    """查询体结构解析异常（缺少 distance、多个字段、无法识别的坐标编码等）."""

    pass


class InvalidGeoHashError(GeoQueryParseError):
    """无效的 geohash 编码异常."""

    pass


class GeoQueryShardError(GeoQueryError):
    """查询编译阶段异常（字段未映射、字段类型不匹配、坐标越界）."""

    pass


class InvalidGeoPointError(GeoQueryError):
    """无效的地理坐标点异常（经纬度超出范围）."""

    pass


class GeoSchemaLookupError(GeoQueryError):
    """字段映射查询失败异常."""

    pass


class GeoQueryConfigError(GeoQueryError):
    """地理查询配置异常."""

    pass
