"""字段映射查询模块.

编译 geo_distance 查询时需要知道字段的映射类型。本模块提供两种实现：
基于映射字典的 MappingSchemaLookup 和基于 Elasticsearch 客户端的 IndexSchemaLookup。
"""

import logging
from typing import Any, Protocol

from elasticsearch import Elasticsearch

from geoflow.geo.exceptions import GeoSchemaLookupError

logger = logging.getLogger(__name__)

# 没有 type 但包含 properties 的节点视为 object 类型
OBJECT_TYPE = "object"


class SchemaLookup(Protocol):
    """字段映射查询接口."""

    def get_field_type(self, field_name: str) -> str | None:
        """返回字段的映射类型，字段未映射时返回 None."""
        ...


class MappingSchemaLookup:
    """基于索引映射字典的字段类型查询.

    支持点号路径（"user.location"）逐层查找 properties，以及多字段（fields）。

    Args:
        mappings: 索引映射，格式同 indices.get_mapping 返回的 mappings 部分

    Examples:
        >>> lookup = MappingSchemaLookup({"properties": {"pin": {"type": "geo_point"}}})
        >>> lookup.get_field_type("pin")
        'geo_point'
        >>> lookup.get_field_type("missing") is None
        True
    """

    def __init__(self, mappings: dict[str, Any]) -> None:
        self._mappings = mappings or {}

    def get_field_type(self, field_name: str) -> str | None:
        node = self._resolve(self._mappings, field_name.split("."))
        if node is None:
            return None
        if "type" in node:
            return node["type"]
        if "properties" in node:
            return OBJECT_TYPE
        return None

    def _resolve(self, node: dict[str, Any], parts: list[str]) -> dict[str, Any] | None:
        if not parts:
            return node

        properties = node.get("properties", {})
        # 字段名本身可能包含点号，优先尝试最长匹配
        for end in range(len(parts), 0, -1):
            name = ".".join(parts[:end])
            if name in properties:
                found = self._resolve(properties[name], parts[end:])
                if found is not None:
                    return found

        # 多字段，如 "title.raw"
        sub_fields = node.get("fields", {})
        if len(parts) == 1 and parts[0] in sub_fields:
            return sub_fields[parts[0]]
        return None


class IndexSchemaLookup:
    """基于 Elasticsearch 字段映射 API 的字段类型查询.

    每次调用 get_field_type 发起一次 indices.get_field_mapping 请求。

    Args:
        es_client: Elasticsearch 客户端实例
        index: 索引名称
    """

    def __init__(self, es_client: Elasticsearch, index: str) -> None:
        if es_client is None:
            raise ValueError("es_client 不能为 None")
        self.es_client = es_client
        self.index = index

    def get_field_type(self, field_name: str) -> str | None:
        """查询字段映射类型.

        Raises:
            GeoSchemaLookupError: 请求失败时抛出
        """
        try:
            response = self.es_client.indices.get_field_mapping(
                index=self.index, fields=field_name
            )
        except Exception as e:
            raise GeoSchemaLookupError(
                f"查询索引 '{self.index}' 字段 '{field_name}' 的映射失败: {str(e)}"
            ) from e

        # ObjectApiResponse 的原始字典在 body 属性中
        body = getattr(response, "body", response)

        # 响应格式: {index: {"mappings": {field: {"full_name": ..., "mapping": {leaf: {...}}}}}}
        for index_name, index_body in body.items():
            field_mapping = index_body.get("mappings", {}).get(field_name)
            if not field_mapping:
                continue
            for leaf in field_mapping.get("mapping", {}).values():
                field_type = leaf.get("type", OBJECT_TYPE)
                logger.debug(f"索引 '{index_name}' 字段 '{field_name}' 类型: {field_type}")
                return field_type

        return None
