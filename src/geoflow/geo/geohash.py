"""Geohash 编解码模块.

Geohash 使用 32 进制字符表，每个字符携带 5 个比特，偶数位比特细分经度，
奇数位比特细分纬度。
"""

from geoflow.geo.exceptions import InvalidGeoHashError

# Geohash 32 进制字符表（不含 a、i、l、o）
BASE32 = "0123456789bcdefghjkmnpqrstuvwxyz"

_DECODE_MAP: dict[str, int] = {char: index for index, char in enumerate(BASE32)}

# Elasticsearch 支持的最大精度
MAX_PRECISION = 12


def decode_bounds(code: str) -> tuple[float, float, float, float]:
    """解码 geohash 为所在单元格的边界.

    Args:
        code: geohash 字符串，大小写不敏感

    Returns:
        (min_lat, max_lat, min_lon, max_lon)

    Raises:
        InvalidGeoHashError: geohash 为空或包含非法字符时抛出
    """
    if not code:
        raise InvalidGeoHashError("geohash must not be null or empty")

    lat_range = [-90.0, 90.0]
    lon_range = [-180.0, 180.0]
    is_lon = True

    for char in code.lower():
        bits = _DECODE_MAP.get(char)
        if bits is None:
            raise InvalidGeoHashError(
                f"unsupported symbol [{char}] in geohash [{code}]"
            )
        for shift in range(4, -1, -1):
            target = lon_range if is_lon else lat_range
            mid = (target[0] + target[1]) / 2
            if (bits >> shift) & 1:
                target[0] = mid
            else:
                target[1] = mid
            is_lon = not is_lon

    return lat_range[0], lat_range[1], lon_range[0], lon_range[1]


def decode(code: str) -> tuple[float, float]:
    """解码 geohash 为单元格中心点坐标.

    Examples:
        >>> lat, lon = decode("drn5x1g8cu2y")
        >>> round(lat, 3), round(lon, 3)
        (40.0, -70.0)

    Returns:
        (lat, lon)
    """
    min_lat, max_lat, min_lon, max_lon = decode_bounds(code)
    return (min_lat + max_lat) / 2, (min_lon + max_lon) / 2


def encode(lat: float, lon: float, precision: int = MAX_PRECISION) -> str:
    """将经纬度编码为 geohash.

    Args:
        lat: 纬度，范围 [-90, 90]
        lon: 经度，范围 [-180, 180]
        precision: geohash 长度，范围 [1, 12]

    Raises:
        InvalidGeoHashError: 精度超出范围时抛出
    """
    if not 1 <= precision <= MAX_PRECISION:
        raise InvalidGeoHashError(
            f"geohash precision must be between 1 and {MAX_PRECISION}, got [{precision}]"
        )

    lat_range = [-90.0, 90.0]
    lon_range = [-180.0, 180.0]
    is_lon = True
    chars = []
    bits = 0
    bit_count = 0

    while len(chars) < precision:
        if is_lon:
            target, value = lon_range, lon
        else:
            target, value = lat_range, lat
        mid = (target[0] + target[1]) / 2
        bits <<= 1
        if value >= mid:
            bits |= 1
            target[0] = mid
        else:
            target[1] = mid
        is_lon = not is_lon

        bit_count += 1
        if bit_count == 5:
            chars.append(BASE32[bits])
            bits = 0
            bit_count = 0

    return "".join(chars)
