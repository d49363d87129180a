"""地理距离查询工具 GeoQueryTool 单元测试."""

import pytest

from geoflow.geo.exceptions import (
    GeoQueryParseError,
    GeoQueryShardError,
    InvalidGeoQueryError,
)
from geoflow.geo.models import (
    DistanceUnit,
    GeoDistanceType,
    GeoPoint,
    GeoQueryConfig,
    GeoValidationMethod,
)
from geoflow.geo.schema import MappingSchemaLookup
from geoflow.geo.tool import GeoQueryTool

MAPPINGS = {
    "properties": {
        "pin": {"type": "geo_point"},
        "shop": {"type": "custom_geo_point"},
        "area": {"type": "geo_shape"},
        "title": {"type": "text"},
    }
}


class TestGeoQueryToolInit:
    """GeoQueryTool 构造函数测试."""

    def test_default_config(self) -> None:
        """测试默认配置."""
        tool = GeoQueryTool(MappingSchemaLookup(MAPPINGS))
        assert tool.config == GeoQueryConfig()
        assert tool.parser.config is tool.config

    def test_warning_sink_passed_to_parser(self) -> None:
        """测试警告接收器传递给解析器."""
        received: list[str] = []
        tool = GeoQueryTool(MappingSchemaLookup(MAPPINGS), warning_sink=received.append)
        tool.parse({"distance": 10, "optimize_bbox": "memory", "pin": [0, 0]})
        assert len(received) == 1
        assert received[0].startswith("Deprecated field [optimize_bbox] used")


class TestGeoDistanceQuery:
    """geo_distance_query 方法测试."""

    def setup_method(self) -> None:
        """每个测试方法前初始化."""
        self.tool = GeoQueryTool(MappingSchemaLookup(MAPPINGS))

    def test_inner_body(self) -> None:
        """测试内层查询体."""
        result = self.tool.geo_distance_query({"distance": "12km", "pin": "40,-70"})
        assert result.to_dict() == {
            "geo_distance": {
                "pin": {"lat": 40.0, "lon": -70.0},
                "distance": 12000.0,
                "distance_type": "arc",
            }
        }

    def test_wrapped_body(self) -> None:
        """测试带外层键的查询体."""
        body = {"distance": "12km", "pin": [-70, 40]}
        wrapped = self.tool.geo_distance_query({"geo_distance": body})
        inner = self.tool.geo_distance_query(body)
        assert wrapped.to_dict() == inner.to_dict()

    def test_twelve_miles(self) -> None:
        """测试英里距离换算."""
        result = self.tool.geo_distance_query({"distance": "12mi", "pin": {"lat": 40, "lon": -70}})
        assert result.to_dict()["geo_distance"]["distance"] == pytest.approx(19312.128)

    def test_field_named_geo_distance(self) -> None:
        """测试外层键不是对象时按内层查询体解析."""
        tool = GeoQueryTool(MappingSchemaLookup({"properties": {"geo_distance": {"type": "geo_point"}}}))
        with pytest.raises(GeoQueryParseError, match="requires 'distance'"):
            tool.geo_distance_query({"geo_distance": [-70, 40]})

    def test_ignore_unmapped(self) -> None:
        """测试未映射字段返回 match_none."""
        result = self.tool.geo_distance_query(
            {"distance": 10, "ignore_unmapped": True, "unmapped": [0, 0]}
        )
        assert result.to_dict() == {"match_none": {}}

    def test_unmapped_raises(self) -> None:
        """测试未映射字段报错."""
        with pytest.raises(GeoQueryShardError, match=r"failed to find geo_point field \[unmapped\]"):
            self.tool.geo_distance_query({"distance": 10, "unmapped": [0, 0]})

    def test_parse_error(self) -> None:
        """测试解析错误透传."""
        with pytest.raises(GeoQueryParseError, match="multiple fields"):
            self.tool.geo_distance_query({"distance": 10, "pin": [0, 0], "title": [0, 0]})

    def test_geo_point_types_config(self) -> None:
        """测试 geo_point_types 配置."""
        body = {"distance": 10, "shop": [0, 0]}
        with pytest.raises(GeoQueryShardError, match="is not a geo_point field"):
            self.tool.geo_distance_query(body)

        tool = GeoQueryTool(
            MappingSchemaLookup(MAPPINGS),
            config=GeoQueryConfig(geo_point_types=("geo_point", "custom_geo_point")),
        )
        assert tool.geo_distance_query(body).name == "geo_distance"


class TestGeoDistanceFilter:
    """geo_distance_filter 方法测试."""

    def setup_method(self) -> None:
        """每个测试方法前初始化."""
        self.tool = GeoQueryTool(MappingSchemaLookup(MAPPINGS))
        self.center = GeoPoint(lat=39.9042, lon=116.4074)

    def test_basic_filter(self) -> None:
        """测试基本距离过滤."""
        result = self.tool.geo_distance_filter("pin", self.center, 5, DistanceUnit.KILOMETERS)
        assert result.to_dict() == {
            "geo_distance": {
                "pin": {"lat": 39.9042, "lon": 116.4074},
                "distance": 5000.0,
                "distance_type": "arc",
            }
        }

    def test_default_unit_is_meters(self) -> None:
        """测试默认单位为米."""
        result = self.tool.geo_distance_filter("pin", self.center, 250)
        assert result.to_dict()["geo_distance"]["distance"] == 250.0

    def test_text_distance(self) -> None:
        """测试带后缀的字符串距离."""
        result = self.tool.geo_distance_filter("pin", self.center, "1.5km")
        assert result.to_dict()["geo_distance"]["distance"] == 1500.0

    def test_distance_type(self) -> None:
        """测试自定义距离算法."""
        result = self.tool.geo_distance_filter(
            "pin", self.center, 5, distance_type=GeoDistanceType.PLANE
        )
        assert result.to_dict()["geo_distance"]["distance_type"] == "plane"

    def test_coerce(self) -> None:
        """测试 COERCE 模式规整中心点."""
        result = self.tool.geo_distance_filter(
            "pin",
            GeoPoint(lat=10.0, lon=190.0),
            5,
            validation_method=GeoValidationMethod.COERCE,
        )
        assert result.to_dict()["geo_distance"]["pin"] == {"lat": 10.0, "lon": -170.0}

    def test_strict_out_of_range(self) -> None:
        """测试 STRICT 模式坐标越界."""
        with pytest.raises(GeoQueryShardError, match="illegal latitude value"):
            self.tool.geo_distance_filter("pin", GeoPoint(lat=91.0, lon=0.0), 5)

    def test_zero_distance_raises(self) -> None:
        """测试距离为 0 时抛出异常."""
        with pytest.raises(InvalidGeoQueryError, match="distance must be greater than zero"):
            self.tool.geo_distance_filter("pin", self.center, 0)

    def test_empty_field_name_raises(self) -> None:
        """测试字段名为空时抛出异常."""
        with pytest.raises(InvalidGeoQueryError, match="fieldName must not be null or empty"):
            self.tool.geo_distance_filter("", self.center, 5)
