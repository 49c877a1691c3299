"""
SkateGuide backend: skatepark ratings, favorites, filtering and moderation
"""
