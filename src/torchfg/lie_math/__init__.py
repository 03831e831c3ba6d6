from .se2 import wrap_angle, rot2, se2_exp_map, se2_log_map, se2_compose, se2_inverse

__all__ = [
    "wrap_angle",
    "rot2",
    "se2_exp_map",
    "se2_log_map",
    "se2_compose",
    "se2_inverse"
]
