"""Arcade coins, points, promotions and reward redemptions service."""
