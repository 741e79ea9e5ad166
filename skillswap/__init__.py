"""SkillSwap: skill matching and time-credit exchanges."""

__version__ = "0.1.0"
