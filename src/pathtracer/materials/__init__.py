"""Materials module for scattering models.

Components:
    base: Material base class and parameter validation
    lambertian: Ideal diffuse reflection
    metal: Specular reflection with optional fuzz
    dielectric: Glass-like refraction with Schlick reflectance
    isotropic: Phase function of participating media
    diffuse_light: Emissive surfaces

Each material keeps a host description and a device registry
(``add_*`` / ``clear_*`` / ``get_*_count``) read by ``scatter_*_by_id``.
"""

from .base import Material, check_albedo
from .dielectric import (
    Dielectric,
    add_dielectric_material,
    check_ior,
    clear_dielectric_materials,
    fresnel_reflectance,
    get_dielectric_material_count,
    scatter_dielectric,
    scatter_dielectric_by_id,
)
from .diffuse_light import (
    DiffuseLight,
    add_diffuse_light_material,
    clear_diffuse_light_materials,
    emitted_diffuse_light_by_id,
    get_diffuse_light_material_count,
)
from .isotropic import (
    Isotropic,
    add_isotropic_material,
    clear_isotropic_materials,
    get_isotropic_material_count,
    scatter_isotropic_by_id,
)
from .lambertian import (
    Lambertian,
    add_lambertian_material,
    clear_lambertian_materials,
    get_lambertian_material_count,
    scatter_lambertian_by_id,
    scatter_lambertian_direction,
)
from .metal import (
    Metal,
    add_metal_material,
    check_fuzz,
    clear_metal_materials,
    get_metal_material_count,
    scatter_metal,
    scatter_metal_by_id,
)

__all__ = [
    "Material",
    "check_albedo",
    # Lambertian
    "Lambertian",
    "scatter_lambertian_direction",
    "scatter_lambertian_by_id",
    "add_lambertian_material",
    "clear_lambertian_materials",
    "get_lambertian_material_count",
    # Metal
    "Metal",
    "check_fuzz",
    "scatter_metal",
    "scatter_metal_by_id",
    "add_metal_material",
    "clear_metal_materials",
    "get_metal_material_count",
    # Dielectric
    "Dielectric",
    "check_ior",
    "fresnel_reflectance",
    "scatter_dielectric",
    "scatter_dielectric_by_id",
    "add_dielectric_material",
    "clear_dielectric_materials",
    "get_dielectric_material_count",
    # Isotropic
    "Isotropic",
    "scatter_isotropic_by_id",
    "add_isotropic_material",
    "clear_isotropic_materials",
    "get_isotropic_material_count",
    # Diffuse light
    "DiffuseLight",
    "emitted_diffuse_light_by_id",
    "add_diffuse_light_material",
    "clear_diffuse_light_materials",
    "get_diffuse_light_material_count",
]
