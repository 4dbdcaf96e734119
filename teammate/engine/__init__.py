"""Team formation engine.

Sub-modules:
- rules       – composition rules and formation audit
- pool        – lock-guarded shared participant pool
- allocator   – concurrent per-team builder
- optimizer   – skill balance local search
- statistics  – skill spread and balance rating
"""
