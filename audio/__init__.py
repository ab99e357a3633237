"""Audible rendering of EMG events: envelopes, primitives, output devices."""
