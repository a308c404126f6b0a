from .models import CacheConfig, EnvSettings

__all__ = ["CacheConfig", "EnvSettings"]
