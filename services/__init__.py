# services/__init__.py
"""
Domain service layer for the roster API.

  - projection: active stats columns from dictionarydata
  - season_stats: one player's season batting row, projected
  - availability: injured / starting / not playing / unknown
  - player_status: record + availability in one call
"""
