from .localscore import calculate_local_score

__all__ = ["calculate_local_score"]
