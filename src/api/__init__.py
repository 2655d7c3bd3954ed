"""
Task Tracker Backend package.

Renders task dates between canonical instants and client timezones using the
fixed 'yyyy-MM-dd HH:mm zz' text pattern. The FastAPI app lives in
src.api.main; the conversion logic in src.api.dates and src.api.schemas.
"""
