"""Progression & achievement engine: XP, streaks, unlocks and achievements"""
