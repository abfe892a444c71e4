"""地図表示用のグリッドクラスタリング"""
import math
from collections import defaultdict
from typing import Sequence

from ..domain.models import BoundingBox, ClusterPoint, PropertyDocument
from ....shared.exceptions.errors import ValidationError
from ....shared.logging.config import get_logger
from ....shared.utils.geo import is_valid_coordinate

logger = get_logger(__name__)

MIN_ZOOM = 1
MAX_ZOOM = 20
MIN_CELL_SIZE = 0.0001
DEFAULT_MAX_CLUSTERS = 100
DEFAULT_INCLUDE_PROPERTIES_THRESHOLD = 5


def calculate_cell_size(zoom: float) -> float:
    """
    ズームレベルからグリッドのセルサイズ（度）を計算

    ズーム1で1度、ズームが1上がるごとに半分。範囲外のズームは1〜20に丸める。
    セルはMIN_CELL_SIZE（0.0001度、約11m）より小さくならない。
    """
    clamped_zoom = max(MIN_ZOOM, min(MAX_ZOOM, zoom))
    return max(MIN_CELL_SIZE, 1 / math.pow(2, clamped_zoom - 1))


def grid_key(latitude: float, longitude: float, cell_size: float) -> tuple[float, float]:
    """座標が属するセルの南西の角"""
    return (
        math.floor(latitude / cell_size) * cell_size,
        math.floor(longitude / cell_size) * cell_size,
    )


def _has_coordinates(document: PropertyDocument) -> bool:
    return is_valid_coordinate(document.latitude) and is_valid_coordinate(document.longitude)


def merge_clusters(clusters: list[ClusterPoint], max_clusters: int) -> list[ClusterPoint]:
    """
    件数の多い max_clusters - 1 個を残し、残りを1つのクラスタにまとめる

    まとめたクラスタの中心は件数で重み付けした平均。物件リストは持たない。

    Args:
        clusters: 件数の降順に並んだクラスタ
        max_clusters: 返すクラスタの最大数
    """
    keep = clusters[: max_clusters - 1]
    overflow = clusters[max_clusters - 1 :]

    if not overflow:
        return keep

    total = sum(cluster.count for cluster in overflow)
    merged = ClusterPoint(
        lat=sum(cluster.lat * cluster.count for cluster in overflow) / total,
        lng=sum(cluster.lng * cluster.count for cluster in overflow) / total,
        count=total,
        properties=None,
    )

    return [*keep, merged]


class ClusteringService:
    """グリッドベースのクラスタリング（インデックスには直接アクセスしない）"""

    def cluster_properties(
        self,
        properties: Sequence[PropertyDocument],
        zoom: float,
        max_clusters: int = DEFAULT_MAX_CLUSTERS,
        include_properties_threshold: int = DEFAULT_INCLUDE_PROPERTIES_THRESHOLD,
    ) -> list[ClusterPoint]:
        """
        物件をグリッドのセル単位でクラスタにまとめる

        Args:
            properties: 物件ドキュメント（座標の無いものは除外）
            zoom: 地図のズームレベル（1〜20）
            max_clusters: 返すクラスタの最大数
            include_properties_threshold: 件数がこれ以下のクラスタには物件リストを含める

        Returns:
            list[ClusterPoint]: 件数の降順
        """
        if max_clusters < 1:
            raise ValidationError(f"max_clusters must be at least 1: {max_clusters}")

        valid = [document for document in properties if _has_coordinates(document)]
        if not valid:
            return []

        cell_size = calculate_cell_size(zoom)

        cells: dict[tuple[float, float], list[PropertyDocument]] = defaultdict(list)
        for document in valid:
            cells[grid_key(float(document.latitude), float(document.longitude), cell_size)].append(document)

        clusters = []
        for members in cells.values():
            count = len(members)
            clusters.append(
                ClusterPoint(
                    lat=sum(float(member.latitude) for member in members) / count,
                    lng=sum(float(member.longitude) for member in members) / count,
                    count=count,
                    properties=list(members) if count <= include_properties_threshold else None,
                )
            )

        clusters.sort(key=lambda cluster: cluster.count, reverse=True)

        logger.debug(
            f"Clustered {len(valid)} properties into {len(clusters)} cells "
            f"(zoom={zoom}, cell_size={cell_size})"
        )

        if len(clusters) > max_clusters:
            return merge_clusters(clusters, max_clusters)

        return clusters

    def cluster_in_bbox(
        self,
        properties: Sequence[PropertyDocument],
        bbox: BoundingBox,
        zoom: float,
        max_clusters: int = DEFAULT_MAX_CLUSTERS,
        include_properties_threshold: int = DEFAULT_INCLUDE_PROPERTIES_THRESHOLD,
    ) -> list[ClusterPoint]:
        """範囲内の物件だけを対象にクラスタリング"""
        inside = [
            document
            for document in properties
            if _has_coordinates(document)
            and bbox.contains(float(document.latitude), float(document.longitude))
        ]

        return self.cluster_properties(
            inside,
            zoom,
            max_clusters=max_clusters,
            include_properties_threshold=include_properties_threshold,
        )
