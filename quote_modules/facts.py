"""Names of the derived facts modules publish for each other."""

BASE_VOLUME = "base_volume_m3"
ADJUSTED_VOLUME = "adjusted_volume_m3"
VOLUME_METHOD = "volume_method"

DISTANCE = "distance_km"
IS_LONG_DISTANCE = "is_long_distance"

VEHICLES = "vehicles"
WORKERS_COUNT = "workers_count"

LIFT_SEVERITY = "lift_severity"
LIFT_FLOOR = "lift_floor"
