"""
Transformation shaders for WebGPU.

These shaders run on the full-screen quad of TextureTransformPipeline.
All shaders follow the gpu_worker convention:
- Binding 0: Input texture (texture_2d<f32>)
- Binding 1: Sampler (linear, clamp-to-edge)
"""

# Vertex stage shared by every quad shader
QUAD_VERTEX_SHADER = """
struct VertexInput {
    @location(0) position: vec2<f32>,
    @location(1) tex_coords: vec2<f32>,
}

struct VertexOutput {
    @builtin(position) clip_position: vec4<f32>,
    @location(0) tex_coords: vec2<f32>,
}

@vertex
fn vs_main(model: VertexInput) -> VertexOutput {
    var out: VertexOutput;
    out.clip_position = vec4<f32>(model.position, 0.0, 1.0);
    out.tex_coords = model.tex_coords;
    return out;
}
"""

# Copy input to output unchanged
PASSTHROUGH_SHADER = QUAD_VERTEX_SHADER + """
@group(0) @binding(0) var t_input: texture_2d<f32>;
@group(0) @binding(1) var s_input: sampler;

@fragment
fn fs_main(in: VertexOutput) -> @location(0) vec4<f32> {
    return textureSample(t_input, s_input, in.tex_coords);
}
"""

# Flip vertically
MIRROR_SHADER = QUAD_VERTEX_SHADER + """
@group(0) @binding(0) var t_input: texture_2d<f32>;
@group(0) @binding(1) var s_input: sampler;

@fragment
fn fs_main(in: VertexOutput) -> @location(0) vec4<f32> {
    // Flip V coordinate
    let mirrored_coords = vec2<f32>(in.tex_coords.x, 1.0 - in.tex_coords.y);
    return textureSample(t_input, s_input, mirrored_coords);
}
"""
