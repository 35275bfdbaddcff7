"""Composable RTP/RTCP interceptors, packet models, FlexFEC encoding and congestion-control building blocks."""

__version__ = "0.1.0"