"""
Concrete GPU transforms.

Example:
    gpu_ctx = await GpuContext.create()
    mirror = create_transform('mirror', gpu_ctx)
    blur = create_transform('blur', gpu_ctx, radius=3.0)
"""

from typing import Dict, List, Type

from ..gpu.context import GpuContext
from .base import TextureTransform
from .blur import DEFAULT_BLUR_RADIUS, MAX_BLUR_RADIUS, BlurTransform, blur_params
from .mirror import MirrorTransform

_TRANSFORMS: Dict[str, Type[TextureTransform]] = {
    MirrorTransform.name: MirrorTransform,
    BlurTransform.name: BlurTransform,
}


def available_transforms() -> List[str]:
    """Names accepted by create_transform()."""
    return sorted(_TRANSFORMS)


def create_transform(name: str, context: GpuContext, **options) -> TextureTransform:
    """
    Build a transform by name.

    Args:
        name: 'mirror' or 'blur'
        context: Shared GPU context
        **options: Constructor options (e.g. radius for blur)

    Raises:
        ValueError: If the name is unknown
    """
    try:
        transform_cls = _TRANSFORMS[name]
    except KeyError:
        raise ValueError(
            f"Unknown transform {name!r}. Available: {', '.join(available_transforms())}"
        ) from None
    return transform_cls(context, **options)


__all__ = [
    'TextureTransform',
    'MirrorTransform',
    'BlurTransform',
    'blur_params',
    'DEFAULT_BLUR_RADIUS',
    'MAX_BLUR_RADIUS',
    'available_transforms',
    'create_transform',
]
