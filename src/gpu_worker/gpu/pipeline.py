"""
Full-screen-quad render pipeline for texture transforms.

A TextureTransformPipeline draws a fixed quad covering the whole output
texture and lets a fragment shader decide what every output pixel is.
Concrete transforms only supply the shader sources (and, optionally, the
size of a per-invocation uniform block).

Bindings seen by the fragment stage:
- Binding 0: Input texture (texture_2d<f32>)
- Binding 1: Sampler (linear, clamp-to-edge)
- Binding 2: Uniform block (only when ShaderConfig.uniform_size is set)
"""

import logging
from dataclasses import dataclass
from typing import Optional

import numpy as np
import wgpu

from ..errors import (
    GpuExecutionError,
    InvalidFrameSize,
    PipelineCreationError,
    ShaderCompileError,
)
from .context import BYTES_PER_PIXEL, GpuContext


logger = logging.getLogger(__name__)

# position.xy, tex_coords.uv - clip space y points up, texture v points down
VERTICES = np.array(
    [
        [-1.0, -1.0, 0.0, 1.0],
        [1.0, -1.0, 1.0, 1.0],
        [1.0, 1.0, 1.0, 0.0],
        [-1.0, 1.0, 0.0, 0.0],
    ],
    dtype=np.float32,
)

INDICES = np.array([0, 1, 2, 2, 3, 0], dtype=np.uint16)

VERTEX_BUFFER_LAYOUT = {
    "array_stride": VERTICES.itemsize * VERTICES.shape[1],
    "step_mode": wgpu.VertexStepMode.vertex,
    "attributes": [
        {
            "format": wgpu.VertexFormat.float32x2,
            "offset": 0,
            "shader_location": 0,
        },
        {
            "format": wgpu.VertexFormat.float32x2,
            "offset": VERTICES.itemsize * 2,
            "shader_location": 1,
        },
    ],
}

TEXTURE_FORMAT = wgpu.TextureFormat.rgba8unorm


@dataclass(frozen=True)
class ShaderConfig:
    """
    Construction-time description of a transform's shaders.

    Attributes:
        label: Debug label used for every GPU object of the pipeline
        vertex_source: WGSL source of the vertex stage
        fragment_source: WGSL source of the fragment stage
        uniform_size: Size in bytes of the per-invocation uniform block
            bound at binding 2, or None when the shader takes no parameters
        vertex_entry: Vertex entry point
        fragment_entry: Fragment entry point
    """
    label: str
    vertex_source: str
    fragment_source: str
    uniform_size: Optional[int] = None
    vertex_entry: str = 'vs_main'
    fragment_entry: str = 'fs_main'


class TextureTransformPipeline:
    """
    Render pipeline executing one shader-defined transform on one image.

    Built once per transform kind and shared by every invocation; all
    per-invocation resources live in a GpuContext scope inside execute().

    Example:
        pipeline = TextureTransformPipeline(gpu_ctx, ShaderConfig(
            label="mirror",
            vertex_source=MIRROR_SHADER,
            fragment_source=MIRROR_SHADER,
        ))
        output = await pipeline.execute(rgba_bytes, width, height)
    """

    def __init__(self, context: GpuContext, config: ShaderConfig):
        """
        Compile the shaders and build the render pipeline.

        Args:
            context: Shared GPU context
            config: Shader configuration

        Raises:
            ShaderCompileError: If the driver rejects a shader module
            PipelineCreationError: If the driver rejects the layout or pipeline
        """
        self.context = context
        self.config = config
        self.label = config.label

        device = context.device

        self.vertex_buffer = context.create_buffer_init(
            VERTICES, wgpu.BufferUsage.VERTEX, label=f"{self.label} vertex buffer"
        )
        self.index_buffer = context.create_buffer_init(
            INDICES, wgpu.BufferUsage.INDEX, label=f"{self.label} index buffer"
        )
        self.sampler = context.create_sampler()

        vertex_module = self._compile(config.vertex_source, "vertex")
        if config.fragment_source == config.vertex_source:
            fragment_module = vertex_module
        else:
            fragment_module = self._compile(config.fragment_source, "fragment")

        entries = [
            {
                "binding": 0,
                "visibility": wgpu.ShaderStage.FRAGMENT,
                "texture": {
                    "sample_type": wgpu.TextureSampleType.float,
                    "view_dimension": wgpu.TextureViewDimension.d2,
                    "multisampled": False,
                },
            },
            {
                "binding": 1,
                "visibility": wgpu.ShaderStage.FRAGMENT,
                "sampler": {"type": wgpu.SamplerBindingType.filtering},
            },
        ]
        if config.uniform_size:
            entries.append({
                "binding": 2,
                "visibility": wgpu.ShaderStage.FRAGMENT,
                "buffer": {"type": wgpu.BufferBindingType.uniform},
            })

        try:
            self.bind_group_layout = device.create_bind_group_layout(
                label=f"{self.label} bind group layout",
                entries=entries,
            )
            pipeline_layout = device.create_pipeline_layout(
                label=f"{self.label} pipeline layout",
                bind_group_layouts=[self.bind_group_layout],
            )
            self.pipeline = device.create_render_pipeline(
                label=f"{self.label} pipeline",
                layout=pipeline_layout,
                vertex={
                    "module": vertex_module,
                    "entry_point": config.vertex_entry,
                    "buffers": [VERTEX_BUFFER_LAYOUT],
                },
                primitive={
                    "topology": wgpu.PrimitiveTopology.triangle_list,
                    "front_face": wgpu.FrontFace.ccw,
                    "cull_mode": wgpu.CullMode.back,
                },
                fragment={
                    "module": fragment_module,
                    "entry_point": config.fragment_entry,
                    "targets": [{
                        "format": TEXTURE_FORMAT,
                        "write_mask": wgpu.ColorWrite.ALL,
                    }],
                },
            )
        except Exception as exc:
            raise PipelineCreationError(
                f"Failed to create {self.label} pipeline: {exc}"
            ) from exc

        logger.debug("Built %s pipeline (uniform_size=%s)", self.label, config.uniform_size)

    def _compile(self, source: str, stage: str) -> 'wgpu.GPUShaderModule':
        try:
            return self.context.device.create_shader_module(
                label=f"{self.label} {stage} shader",
                code=source,
            )
        except Exception as exc:
            raise ShaderCompileError(
                f"Failed to compile {self.label} {stage} shader: {exc}"
            ) from exc

    def _validate(self, image: bytes, width: int, height: int, uniforms: Optional[bytes]) -> None:
        if width <= 0 or height <= 0:
            raise ValueError(f"Image dimensions must be positive, got {width}x{height}")
        if len(image) != width * height * BYTES_PER_PIXEL:
            raise InvalidFrameSize(len(image), width, height)

        uniform_size = self.config.uniform_size
        if uniform_size and uniforms is None:
            raise ValueError(f"{self.label} requires {uniform_size} bytes of uniforms")
        if not uniform_size and uniforms is not None:
            raise ValueError(f"{self.label} takes no uniforms")
        if uniform_size and len(uniforms) != uniform_size:
            raise ValueError(
                f"{self.label} uniforms must be {uniform_size} bytes, got {len(uniforms)}"
            )

    async def execute(
        self,
        image: bytes,
        width: int,
        height: int,
        uniforms: Optional[bytes] = None
    ) -> bytes:
        """
        Run the transform on one RGBA8 image.

        Args:
            image: Tightly packed RGBA8 pixels (width * height * 4 bytes)
            width: Image width in pixels
            height: Image height in pixels
            uniforms: Uniform block contents when the shader declares one

        Returns:
            Transformed RGBA8 pixels, exactly width * height * 4 bytes

        Raises:
            InvalidFrameSize: If ``image`` is not width * height * 4 bytes
            GpuExecutionError: If the driver rejects a command
            BufferMapError: If the readback fails
        """
        self._validate(image, width, height, uniforms)

        context = self.context
        device = context.device
        stride = context.aligned_row_stride(width)
        extent = (width, height, 1)

        with context.scope(self.label) as scope:
            try:
                input_texture = scope.create_texture(
                    width, height,
                    wgpu.TextureUsage.TEXTURE_BINDING | wgpu.TextureUsage.COPY_DST,
                    label=f"{self.label} input texture",
                )
                output_texture = scope.create_texture(
                    width, height,
                    wgpu.TextureUsage.RENDER_ATTACHMENT | wgpu.TextureUsage.COPY_SRC,
                    label=f"{self.label} output texture",
                )

                context.queue.write_texture(
                    {
                        "texture": input_texture,
                        "mip_level": 0,
                        "origin": (0, 0, 0),
                    },
                    image,
                    {
                        "offset": 0,
                        "bytes_per_row": width * BYTES_PER_PIXEL,
                        "rows_per_image": height,
                    },
                    extent
                )

                entries = [
                    {"binding": 0, "resource": input_texture.create_view()},
                    {"binding": 1, "resource": self.sampler},
                ]
                if self.config.uniform_size:
                    uniform_buffer = scope.create_buffer_init(
                        uniforms,
                        wgpu.BufferUsage.UNIFORM | wgpu.BufferUsage.COPY_DST,
                        label=f"{self.label} uniform buffer",
                    )
                    entries.append({
                        "binding": 2,
                        "resource": {
                            "buffer": uniform_buffer,
                            "offset": 0,
                            "size": self.config.uniform_size,
                        },
                    })

                bind_group = device.create_bind_group(
                    label=f"{self.label} bind group",
                    layout=self.bind_group_layout,
                    entries=entries,
                )

                encoder = device.create_command_encoder(label=f"{self.label} encoder")
                render_pass = encoder.begin_render_pass(
                    label=f"{self.label} render pass",
                    color_attachments=[{
                        "view": output_texture.create_view(),
                        "resolve_target": None,
                        "clear_value": (0.0, 0.0, 0.0, 1.0),
                        "load_op": wgpu.LoadOp.clear,
                        "store_op": wgpu.StoreOp.store,
                    }],
                )
                render_pass.set_pipeline(self.pipeline)
                render_pass.set_bind_group(0, bind_group)
                render_pass.set_vertex_buffer(0, self.vertex_buffer)
                render_pass.set_index_buffer(self.index_buffer, wgpu.IndexFormat.uint16)
                render_pass.draw_indexed(len(INDICES), 1, 0, 0, 0)
                render_pass.end()

                output_buffer = scope.create_buffer(
                    stride * height,
                    wgpu.BufferUsage.COPY_DST | wgpu.BufferUsage.MAP_READ,
                    label=f"{self.label} output buffer",
                )
                encoder.copy_texture_to_buffer(
                    {
                        "texture": output_texture,
                        "mip_level": 0,
                        "origin": (0, 0, 0),
                    },
                    {
                        "buffer": output_buffer,
                        "offset": 0,
                        "bytes_per_row": stride,
                        "rows_per_image": height,
                    },
                    extent
                )

                context.queue.submit([encoder.finish()])
            except wgpu.GPUError as exc:
                raise GpuExecutionError(f"{self.label} failed: {exc}") from exc

            data = await context.read_buffer(output_buffer)

        return context.remove_padding(data, width, height, stride)

    def __repr__(self) -> str:
        return f"TextureTransformPipeline(label={self.label!r})"
