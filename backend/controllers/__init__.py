"""Protocol controllers for the HAP bridge backend."""

from .cloud import CloudSocket  # noqa: F401
from .homebridge import HomebridgeClient  # noqa: F401
