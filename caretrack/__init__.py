"""CareTrack: record management for NDIS support providers."""
