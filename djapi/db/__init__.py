"""
db/ - Database Layer
====================
Handles connection parameters, DB-API connections, prepared statements and
result cursors. This layer is the lowest in the architecture; concrete
accessors subclass `accessor.RecordAccessor`.
"""
