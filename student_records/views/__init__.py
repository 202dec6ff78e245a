from .router import ViewSession, Screen, default_destination, resolve_view
