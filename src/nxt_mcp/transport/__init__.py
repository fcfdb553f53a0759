"""Transport adapters: Bluetooth serial and USB."""

from .base import Transport
