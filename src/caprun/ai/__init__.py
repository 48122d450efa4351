from .opponent import AIOpponent, ScoredOption, default_ai_profiles, get_ai_profile

__all__ = ["AIOpponent", "ScoredOption", "default_ai_profiles", "get_ai_profile"]
