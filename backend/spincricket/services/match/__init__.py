from .engine import DeliveryEngine
from .scoring import classify_choice

__all__ = ['DeliveryEngine', 'classify_choice']
