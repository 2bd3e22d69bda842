"""Registry — ordered index of patch records.

The registry provides:
- Recording: append a patch and store its content as a blob
- Listing: enumerate patches with 1-based positions
- Removal: drop a patch by its current position, or reset the whole list
- Checking: report records whose blobs are missing or damaged
"""
