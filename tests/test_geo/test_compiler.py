"""compile_geo_distance_query 单元测试."""

import logging
from unittest.mock import MagicMock

import pytest

from geoflow.geo.compiler import compile_geo_distance_query
from geoflow.geo.exceptions import (
    GeoQueryShardError,
    InvalidGeoPointError,
    InvalidGeoQueryError,
)
from geoflow.geo.models import (
    DistanceUnit,
    GeoDistanceType,
    GeoPoint,
    GeoQueryConfig,
    GeoValidationMethod,
)
from geoflow.geo.parser import GeoDistanceQueryParser
from geoflow.geo.query import GeoDistanceQueryBuilder
from geoflow.geo.schema import MappingSchemaLookup

MAPPINGS = {
    "properties": {
        "pin": {"type": "geo_point"},
        "title": {"type": "text"},
        "store": {
            "properties": {
                "location": {"type": "geo_point"},
            }
        },
    }
}


@pytest.fixture
def lookup() -> MappingSchemaLookup:
    """创建字段映射查询."""
    return MappingSchemaLookup(MAPPINGS)


def make_query(field_name: str = "pin", lat: float = 40.0, lon: float = -70.0) -> GeoDistanceQueryBuilder:
    return GeoDistanceQueryBuilder(field_name).set_point(lat, lon).set_distance(12, DistanceUnit.KILOMETERS)


class TestCompile:
    """正常编译测试."""

    def test_basic(self, lookup: MappingSchemaLookup) -> None:
        """测试基本编译结果."""
        result = compile_geo_distance_query(make_query(), lookup)
        assert result.name == "geo_distance"
        assert result.to_dict() == {
            "geo_distance": {
                "pin": {"lat": 40.0, "lon": -70.0},
                "distance": 12000.0,
                "distance_type": "arc",
            }
        }

    def test_nested_field(self, lookup: MappingSchemaLookup) -> None:
        """测试嵌套对象中的地理字段."""
        result = compile_geo_distance_query(make_query("store.location"), lookup)
        assert result.to_dict()["geo_distance"]["store.location"] == {"lat": 40.0, "lon": -70.0}

    def test_twelve_miles(self, lookup: MappingSchemaLookup) -> None:
        """测试 "12mi" 距离编译为米."""
        query = GeoDistanceQueryParser().parse({"distance": "12mi", "pin": {"lat": 40, "lon": -70}})
        body = compile_geo_distance_query(query, lookup).to_dict()["geo_distance"]
        assert body["distance"] == pytest.approx(19312.128)
        assert body["pin"] == {"lat": 40.0, "lon": -70.0}

    def test_distance_type(self, lookup: MappingSchemaLookup) -> None:
        """测试距离算法."""
        query = make_query().set_distance_type(GeoDistanceType.PLANE)
        body = compile_geo_distance_query(query, lookup).to_dict()["geo_distance"]
        assert body["distance_type"] == "plane"

    def test_boost_and_name(self, lookup: MappingSchemaLookup) -> None:
        """测试 boost 和 _name."""
        query = make_query().set_boost(2.0).set_query_name("nearby")
        body = compile_geo_distance_query(query, lookup).to_dict()["geo_distance"]
        assert body["boost"] == 2.0
        assert body["_name"] == "nearby"

    def test_default_boost_omitted(self, lookup: MappingSchemaLookup) -> None:
        """测试默认 boost 不输出."""
        body = compile_geo_distance_query(make_query(), lookup).to_dict()["geo_distance"]
        assert "boost" not in body
        assert "_name" not in body

    def test_single_lookup(self) -> None:
        """测试每次编译只查询一次字段映射."""
        schema_lookup = MagicMock()
        schema_lookup.get_field_type.return_value = "geo_point"
        compile_geo_distance_query(make_query(), schema_lookup)
        schema_lookup.get_field_type.assert_called_once_with("pin")

    def test_custom_geo_point_types(self) -> None:
        """测试配置额外的地理坐标字段类型."""
        schema_lookup = MappingSchemaLookup({"properties": {"pin": {"type": "custom_geo_point"}}})
        config = GeoQueryConfig(geo_point_types=("geo_point", "custom_geo_point"))
        result = compile_geo_distance_query(make_query(), schema_lookup, config)
        assert result.name == "geo_distance"

    def test_incomplete_query(self, lookup: MappingSchemaLookup) -> None:
        """测试未设置距离的查询无法编译."""
        with pytest.raises(InvalidGeoQueryError, match="requires both a point and a distance"):
            compile_geo_distance_query(GeoDistanceQueryBuilder("pin").set_point(1, 2), lookup)


class TestUnmappedField:
    """未映射字段测试."""

    def test_ignore_unmapped(self, lookup: MappingSchemaLookup, caplog: pytest.LogCaptureFixture) -> None:
        """测试 ignore_unmapped 为 True 时返回 match_none."""
        query = make_query("unmapped").set_ignore_unmapped(True)
        with caplog.at_level(logging.INFO, logger="geoflow.geo.compiler"):
            result = compile_geo_distance_query(query, lookup)
        assert result.to_dict() == {"match_none": {}}
        assert any("unmapped" in message for message in caplog.messages)

    def test_unmapped_raises(self, lookup: MappingSchemaLookup) -> None:
        """测试 ignore_unmapped 为 False 时报错."""
        with pytest.raises(GeoQueryShardError) as exc_info:
            compile_geo_distance_query(make_query("unmapped"), lookup)
        assert str(exc_info.value) == "failed to find geo_point field [unmapped]"

    def test_wrong_field_type(self, lookup: MappingSchemaLookup) -> None:
        """测试字段不是 geo_point 类型."""
        with pytest.raises(GeoQueryShardError, match=r"field \[title\] is not a geo_point field"):
            compile_geo_distance_query(make_query("title"), lookup)

    def test_wrong_field_type_not_ignored(self, lookup: MappingSchemaLookup) -> None:
        """测试 ignore_unmapped 不影响字段类型检查."""
        query = make_query("title").set_ignore_unmapped(True)
        with pytest.raises(GeoQueryShardError):
            compile_geo_distance_query(query, lookup)

    def test_object_field(self, lookup: MappingSchemaLookup) -> None:
        """测试对象字段不是 geo_point 类型."""
        with pytest.raises(GeoQueryShardError, match="is not a geo_point field"):
            compile_geo_distance_query(make_query("store"), lookup)


class TestValidationMethod:
    """坐标校验方式测试."""

    def test_strict_out_of_range(self, lookup: MappingSchemaLookup) -> None:
        """测试 STRICT 模式下坐标越界报错."""
        query = make_query(lat=100.0, lon=0.0)
        with pytest.raises(GeoQueryShardError, match="couldn't validate latitude/ longitude values") as exc_info:
            compile_geo_distance_query(query, lookup)
        assert isinstance(exc_info.value.__cause__, InvalidGeoPointError)
        assert "illegal latitude value [100.0]" in str(exc_info.value)

    def test_strict_longitude_out_of_range(self, lookup: MappingSchemaLookup) -> None:
        """测试 STRICT 模式下经度越界报错."""
        with pytest.raises(GeoQueryShardError, match=r"illegal longitude value \[200.0\]"):
            compile_geo_distance_query(make_query(lat=0.0, lon=200.0), lookup)

    def test_coerce_normalizes(self, lookup: MappingSchemaLookup) -> None:
        """测试 COERCE 模式规整坐标且不修改查询描述对象."""
        query = make_query(lat=100.0, lon=0.0).set_validation_method(GeoValidationMethod.COERCE)
        body = compile_geo_distance_query(query, lookup).to_dict()["geo_distance"]
        assert body["pin"] == {"lat": 80.0, "lon": 180.0}
        assert query.point == GeoPoint(lat=100.0, lon=0.0)

    def test_coerce_wraps_longitude(self, lookup: MappingSchemaLookup) -> None:
        """测试 COERCE 模式经度回绕."""
        query = make_query(lat=10.0, lon=190.0).set_validation_method(GeoValidationMethod.COERCE)
        body = compile_geo_distance_query(query, lookup).to_dict()["geo_distance"]
        assert body["pin"] == {"lat": 10.0, "lon": -170.0}

    def test_ignore_malformed_passes_through(self, lookup: MappingSchemaLookup) -> None:
        """测试 IGNORE_MALFORMED 模式原样使用坐标."""
        query = make_query(lat=100.0, lon=200.0).set_validation_method(
            GeoValidationMethod.IGNORE_MALFORMED
        )
        body = compile_geo_distance_query(query, lookup).to_dict()["geo_distance"]
        assert body["pin"] == {"lat": 100.0, "lon": 200.0}

    def test_deprecated_coerce_option(self, lookup: MappingSchemaLookup) -> None:
        """测试弃用参数 coerce 迁移后的编译结果."""
        query = GeoDistanceQueryParser().parse({"distance": 10, "coerce": True, "pin": [190, 10]})
        body = compile_geo_distance_query(query, lookup).to_dict()["geo_distance"]
        assert body["pin"] == {"lat": 10.0, "lon": -170.0}


def test_builder_to_query(lookup: MappingSchemaLookup) -> None:
    """测试 GeoDistanceQueryBuilder.to_query 与直接编译结果一致."""
    query = make_query().set_query_name("nearby")
    assert query.to_query(lookup).to_dict() == compile_geo_distance_query(query, lookup).to_dict()


def test_geo_shape_is_not_a_point_type() -> None:
    """测试默认配置不把 geo_shape 视为地理坐标点."""
    schema_lookup = MappingSchemaLookup({"properties": {"area": {"type": "geo_shape"}}})
    with pytest.raises(GeoQueryShardError, match=r"field \[area\] is not a geo_point field"):
        compile_geo_distance_query(make_query("area"), schema_lookup)
