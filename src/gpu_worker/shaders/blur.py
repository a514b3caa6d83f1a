"""
Blur effect shaders for WebGPU.

Single-pass Gaussian blur over a circular footprint. The radius reaches
the shader through a uniform block at binding 2:

    struct BlurParams {
        radius: f32,   // footprint radius in pixels, 0 = identity
        sigma: f32,    // Gaussian standard deviation in pixels
        _pad0: f32,
        _pad1: f32,
    }

Samples outside the image are clamped to the edge by the sampler.
"""

from .transforms import QUAD_VERTEX_SHADER

# Size of BlurParams in bytes
BLUR_PARAMS_SIZE = 16

GAUSSIAN_BLUR_SHADER = QUAD_VERTEX_SHADER + """
struct BlurParams {
    radius: f32,
    sigma: f32,
    _pad0: f32,
    _pad1: f32,
}

@group(0) @binding(0) var t_input: texture_2d<f32>;
@group(0) @binding(1) var s_input: sampler;
@group(0) @binding(2) var<uniform> params: BlurParams;

@fragment
fn fs_main(in: VertexOutput) -> @location(0) vec4<f32> {
    let taps = i32(ceil(params.radius));
    if (taps <= 0) {
        return textureSampleLevel(t_input, s_input, in.tex_coords, 0.0);
    }

    let texel = 1.0 / vec2<f32>(textureDimensions(t_input, 0));
    let radius_sq = params.radius * params.radius;
    let two_sigma_sq = 2.0 * params.sigma * params.sigma;

    var color = vec4<f32>(0.0, 0.0, 0.0, 0.0);
    var total = 0.0;

    for (var dy = -taps; dy <= taps; dy++) {
        for (var dx = -taps; dx <= taps; dx++) {
            let offset = vec2<f32>(f32(dx), f32(dy));
            let dist_sq = dot(offset, offset);
            if (dist_sq > radius_sq) {
                continue;
            }
            let weight = exp(-dist_sq / two_sigma_sq);
            color += textureSampleLevel(t_input, s_input, in.tex_coords + offset * texel, 0.0) * weight;
            total += weight;
        }
    }

    return color / total;
}
"""
