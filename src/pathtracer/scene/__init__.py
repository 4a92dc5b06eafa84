"""Scene module for scene compilation, upload and queries.

Components:
    compiler: Flattens a host entity tree into primitive and object tables
    intersection: Device scene tables, BVH traversal and host ray queries
    manager: Unified scene manager coordinating materials and geometry
    demo_scenes: Ready-made scenes with their camera settings
"""

from .compiler import CompiledScene, ObjectKind, PrimitiveKind, SceneCompiler, compile_scene
from .demo_scenes import SCENES, SceneSettings, build_scene
from .intersection import (
    MAX_BVH_NODES,
    MAX_OBJECTS,
    MAX_PRIMITIVES,
    MAX_TRANSFORMS,
    T_INFINITY,
    T_MIN,
    QueryHit,
    clear_scene,
    get_bvh_node_count,
    get_object_count,
    get_primitive_count,
    intersect_bvh,
    intersect_linear,
    intersect_scene,
    is_scene_loaded,
    query_hit,
    set_use_bvh,
    upload_scene,
)
from .manager import (
    MAX_MATERIALS,
    MaterialInfo,
    MaterialType,
    SceneManager,
    SceneStats,
    get_material_type,
    get_material_type_index,
)

__all__ = [
    # Compiler
    "CompiledScene",
    "ObjectKind",
    "PrimitiveKind",
    "SceneCompiler",
    "compile_scene",
    # Intersection
    "T_MIN",
    "T_INFINITY",
    "MAX_PRIMITIVES",
    "MAX_OBJECTS",
    "MAX_BVH_NODES",
    "MAX_TRANSFORMS",
    "QueryHit",
    "clear_scene",
    "upload_scene",
    "set_use_bvh",
    "is_scene_loaded",
    "get_primitive_count",
    "get_object_count",
    "get_bvh_node_count",
    "intersect_bvh",
    "intersect_linear",
    "intersect_scene",
    "query_hit",
    # Manager
    "SceneManager",
    "SceneStats",
    "MaterialType",
    "MaterialInfo",
    "MAX_MATERIALS",
    "get_material_type",
    "get_material_type_index",
    # Demo scenes
    "SCENES",
    "SceneSettings",
    "build_scene",
]
