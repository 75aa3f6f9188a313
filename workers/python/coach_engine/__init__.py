"""
Coach Engine Python Worker

This module provides Celery tasks for:
- Elevation stream smoothing
- Terrain segmentation with effort-weighted time allocation
- Climb detection, VAM and climb fatigue analysis
- Personalized pace-by-grade profiles
- Ultra-distance fatigue and finish-time prediction
"""

# Delay Celery import to allow testing without a broker configured
def get_celery_app():
    from .celery_app import app
    return app

# Only export get_celery_app function, not the app directly
__all__ = ['get_celery_app']
