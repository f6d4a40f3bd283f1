"""
Basic DSP building blocks for PyAudioStudio.
Coefficient and curve functions are pure; the block kernels take and return
their running state so they can be fed consecutive blocks.
"""
from __future__ import annotations
import math
import numpy as np
from scipy.signal import firwin, lfilter

from .types import AudioArray
from .config import EFFECTS_CONFIG, EXPORT_CONFIG


def apply_gain(data: AudioArray, factor: float = 1.0) -> AudioArray:
    """
    Multiply audio data by a gain factor.

    Args:
        data: Audio samples
        factor: Gain multiplier (1.0 = no change)

    Returns:
        Gained audio data
    """
    return (data * np.float32(factor)).astype(np.float32)


def apply_normalize(data: AudioArray, target_peak: float = EXPORT_CONFIG.normalize_target) -> AudioArray:
    """
    Scale the whole buffer so its peak hits `target_peak`.

    Silent buffers and buffers already at or above the target are returned
    untouched (same object).
    """
    if data.size == 0:
        return data
    peak = float(np.max(np.abs(data)))
    if peak == 0.0 or peak >= target_peak:
        return data
    return (data * np.float32(target_peak / peak)).astype(np.float32)


# =============================================================================
# BIQUADS (RBJ cookbook, same shapes as the Web Audio BiquadFilterNode)
# =============================================================================

def normalized_frequency(sr: int, frequency: float) -> float:
    """Frequency as a fraction of Nyquist, clamped to [0, 1]."""
    return min(max(frequency / (sr / 2), 0.0), 1.0)


def _flat(gain: float) -> tuple[np.ndarray, np.ndarray]:
    return np.array([gain, 0.0, 0.0]), np.array([1.0, 0.0, 0.0])


def low_shelf_coefficients(
    sr: int,
    cutoff: float,
    gain_db: float,
    Q: float = EFFECTS_CONFIG.eq_shelf_q
) -> tuple[np.ndarray, np.ndarray]:
    """Normalized (b, a) for a low-shelf band."""
    A = 10 ** (gain_db / 40)
    f = normalized_frequency(sr, cutoff)
    # At the band edges the shelf degenerates to a flat gain
    if f >= 1.0:
        return _flat(A * A)
    if f <= 0.0:
        return _flat(1.0)
    omega = math.pi * f
    sn, cs = math.sin(omega), math.cos(omega)
    alpha = sn / (2 * Q)

    b0 = A * ((A + 1) - (A - 1) * cs + 2 * math.sqrt(A) * alpha)
    b1 = 2 * A * ((A - 1) - (A + 1) * cs)
    b2 = A * ((A + 1) - (A - 1) * cs - 2 * math.sqrt(A) * alpha)
    a0 = (A + 1) + (A - 1) * cs + 2 * math.sqrt(A) * alpha
    a1 = -2 * ((A - 1) + (A + 1) * cs)
    a2 = (A + 1) + (A - 1) * cs - 2 * math.sqrt(A) * alpha

    return np.array([b0, b1, b2]) / a0, np.array([a0, a1, a2]) / a0


def high_shelf_coefficients(
    sr: int,
    cutoff: float,
    gain_db: float,
    Q: float = EFFECTS_CONFIG.eq_shelf_q
) -> tuple[np.ndarray, np.ndarray]:
    """Normalized (b, a) for a high-shelf band."""
    A = 10 ** (gain_db / 40)
    f = normalized_frequency(sr, cutoff)
    if f >= 1.0:
        return _flat(1.0)
    if f <= 0.0:
        return _flat(A * A)
    omega = math.pi * f
    sn, cs = math.sin(omega), math.cos(omega)
    alpha = sn / (2 * Q)

    b0 = A * ((A + 1) + (A - 1) * cs + 2 * math.sqrt(A) * alpha)
    b1 = -2 * A * ((A - 1) + (A + 1) * cs)
    b2 = A * ((A + 1) + (A - 1) * cs - 2 * math.sqrt(A) * alpha)
    a0 = (A + 1) - (A - 1) * cs + 2 * math.sqrt(A) * alpha
    a1 = 2 * ((A - 1) - (A + 1) * cs)
    a2 = (A + 1) - (A - 1) * cs - 2 * math.sqrt(A) * alpha

    return np.array([b0, b1, b2]) / a0, np.array([a0, a1, a2]) / a0


def peaking_coefficients(
    sr: int,
    frequency: float,
    gain_db: float,
    Q: float = EFFECTS_CONFIG.eq_mid_q
) -> tuple[np.ndarray, np.ndarray]:
    """Normalized (b, a) for a peaking band."""
    A = 10 ** (gain_db / 40.0)
    f = normalized_frequency(sr, frequency)
    if f <= 0.0 or f >= 1.0:
        return _flat(1.0)
    omega = math.pi * f
    sn = math.sin(omega)
    cs = math.cos(omega)
    alpha = sn / (2 * Q)

    b0 = 1 + alpha * A
    b1 = -2 * cs
    b2 = 1 - alpha * A
    a0 = 1 + alpha / A
    a1 = -2 * cs
    a2 = 1 - alpha / A

    return np.array([b0, b1, b2]) / a0, np.array([a0, a1, a2]) / a0


BIQUAD_DESIGNS = {
    "lowshelf": low_shelf_coefficients,
    "highshelf": high_shelf_coefficients,
    "peaking": peaking_coefficients,
}


def apply_biquad(
    data: AudioArray,
    b: np.ndarray,
    a: np.ndarray,
    zi: np.ndarray | None = None
) -> tuple[AudioArray, np.ndarray]:
    """
    Filter (frames, channels) along time, carrying the filter state.

    Returns:
        (filtered block, new state of shape (2, channels))
    """
    if zi is None:
        zi = np.zeros((max(len(a), len(b)) - 1, data.shape[1]))
    out, zf = lfilter(b, a, data, axis=0, zi=zi)
    return out.astype(np.float32), zf


# =============================================================================
# DYNAMICS
# =============================================================================

def time_coefficient(seconds: float, sr: int) -> float:
    """One-pole smoothing coefficient; 0 s means the envelope jumps instantly."""
    samples = seconds * sr
    if samples <= 1.0:
        return 1.0
    return 1.0 - math.exp(-1.0 / samples)


def apply_compressor(
    data: AudioArray,
    sr: int,
    threshold_db: float,
    ratio: float,
    attack_s: float,
    release_s: float,
    envelope: float = 0.0
) -> tuple[AudioArray, float]:
    """
    Hard-knee peak compressor.

    Args:
        data: Audio samples (frames, channels)
        sr: Sample rate
        threshold_db: Threshold level in dBFS
        ratio: Compression ratio (e.g., 4.0 = 4:1)
        attack_s: Attack time in seconds
        release_s: Release time in seconds
        envelope: Detector level carried over from the previous block

    Returns:
        (compressed block, detector level after the block)
    """
    if ratio <= 1.0 or len(data) == 0:
        return data, envelope

    attack_coeff = time_coefficient(attack_s, sr)
    release_coeff = time_coefficient(release_s, sr)

    # Linked detector: loudest channel drives the gain for all channels
    env_input = np.max(np.abs(data), axis=1)
    env = np.empty_like(env_input)
    env_prev = envelope

    for i in range(len(env_input)):
        x = env_input[i]
        if x > env_prev:
            env_prev += attack_coeff * (x - env_prev)
        else:
            env_prev += release_coeff * (x - env_prev)
        env[i] = env_prev

    level_db = 20.0 * np.log10(np.maximum(env, 1e-9))
    over_db = np.maximum(level_db - threshold_db, 0.0)
    gain = 10 ** (-over_db * (1.0 - 1.0 / ratio) / 20.0)

    return (data * gain[:, np.newaxis]).astype(np.float32), float(env_prev)


# =============================================================================
# SATURATION
# =============================================================================

def saturation_curve(amount: float, n_samples: int = EFFECTS_CONFIG.saturation_curve_size) -> np.ndarray:
    """
    Distortion transfer curve sampled over x in [-1, 1).

    For drive k: y = (3 + k) * x * 20deg / (pi + k * |x|)
    """
    k = float(amount)
    deg = math.pi / 180
    x = np.arange(n_samples, dtype=np.float64) * 2 / n_samples - 1
    return ((3 + k) * x * 20 * deg / (math.pi + k * np.abs(x))).astype(np.float32)


def apply_curve(data: AudioArray, curve: np.ndarray) -> AudioArray:
    """Map samples through a transfer curve; out-of-range input clamps to the ends."""
    n = len(curve)
    position = (data.astype(np.float64) + 1.0) * (n - 1) / 2.0
    return np.interp(position, np.arange(n), curve).astype(np.float32)


def oversampling_filter(
    factor: int = EFFECTS_CONFIG.oversample_factor,
    taps: int = EFFECTS_CONFIG.oversample_taps
) -> np.ndarray:
    """Anti-imaging / anti-aliasing low-pass for `factor`x oversampling."""
    return firwin(taps, 1.0 / factor)


def apply_oversampled_curve(
    data: AudioArray,
    curve: np.ndarray,
    fir: np.ndarray,
    factor: int,
    state: tuple[np.ndarray, np.ndarray] | None = None
) -> tuple[AudioArray, tuple[np.ndarray, np.ndarray]]:
    """
    Apply a transfer curve at `factor` times the sample rate.

    Zero-stuff, interpolate, shape, filter, decimate. The two FIR states are
    carried so consecutive blocks join seamlessly.
    """
    frames, channels = data.shape
    if state is None:
        state = (np.zeros((len(fir) - 1, channels)), np.zeros((len(fir) - 1, channels)))
    up_state, down_state = state

    stuffed = np.zeros((frames * factor, channels), dtype=np.float64)
    stuffed[::factor] = data
    upsampled, up_state = lfilter(fir * factor, [1.0], stuffed, axis=0, zi=up_state)

    shaped = apply_curve(upsampled, curve)

    filtered, down_state = lfilter(fir, [1.0], shaped, axis=0, zi=down_state)
    return filtered[::factor].astype(np.float32), (up_state, down_state)
