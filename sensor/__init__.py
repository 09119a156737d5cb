from .base import (
    MotionSensor,
    SensorConfig,
    Subscription,
    build_sensor_config,
    create_sensor,
    register_sensor,
)

__all__ = [
    "MotionSensor",
    "SensorConfig",
    "Subscription",
    "build_sensor_config",
    "create_sensor",
    "register_sensor",
]
