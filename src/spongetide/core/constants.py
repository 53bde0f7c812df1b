"""Physical constants, unit conversions and constituent frequencies."""

import math

# Unit conversions
MM_TO_M = 1.0e-3  # atlas elevation stored in millimetres
CM2_S_TO_M2_S = 1.0e-4  # atlas transport stored in cm^2/s
RAD_TO_DEG = 180 / math.pi

# Defaults
DEFAULT_MIN_DEPTH = 25.0  # m, floor when dividing transport by depth
DEFAULT_N_NEIGHBORS = 20
DEFAULT_BBOX_PAD_DEG = 1.0

# Wildcard replaced by the constituent name in per-constituent atlas file names
CONSTITUENT_WILDCARD = "**"

# Tidal constituent angular frequencies (rad/s)
CONSTITUENT_FREQUENCIES: dict[str, float] = {
    # Semidiurnal
    "m2": 1.405189025e-4,  # Principal lunar
    "s2": 1.454441043e-4,  # Principal solar
    "n2": 1.378796995e-4,  # Larger lunar elliptic
    "k2": 1.458423172e-4,  # Lunisolar
    "2n2": 1.352404965e-4,
    # Diurnal
    "k1": 7.292115836e-5,  # Lunisolar diurnal
    "o1": 6.759774415e-5,  # Principal lunar diurnal
    "p1": 7.252294598e-5,  # Principal solar diurnal
    "q1": 6.495854113e-5,  # Larger lunar elliptic diurnal
    "s1": 7.272205217e-5,  # Solar diurnal
    "2q1": 6.231933975e-5,
    # Long period
    "mf": 5.323414692e-6,
    "mm": 2.639203072e-6,
    # Shallow water
    "m4": 2.810378050e-4,
    "ms4": 2.859630068e-4,
    "mn4": 2.783986020e-4,
    # Terdiurnal
    "m3": 2.107783538e-4,  # Lunar terdiurnal
    "mk3": 2.134400486e-4,
}
