"""Vehicle location refresh (platform provider injected via core.ports.LocationProvider)."""
