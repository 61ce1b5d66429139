"""
Tile streaming.

The TileManager keeps the tiles around a moving observer resident, generating
them on demand and announcing load/unload batches to subscribers.
"""
