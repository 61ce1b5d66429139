from __future__ import annotations

CREATE_UPDATES_TABLE_SQL = """
CREATE TABLE IF NOT EXISTS updates (
  ts_ms BIGINT,
  source TEXT,
  observer_lat DOUBLE,
  observer_lon DOUBLE,
  loaded INTEGER,
  unloaded INTEGER,
  resident INTEGER,
  generate_ms DOUBLE,
  total_ms DOUBLE
);
"""

SUMMARY_SQL_TEMPLATE = """
SELECT
  source,
  COUNT(*) AS n,
  AVG(total_ms) AS avg_total_ms,
  quantile_cont(total_ms, 0.50) AS p50_total_ms,
  quantile_cont(total_ms, 0.95) AS p95_total_ms,
  AVG(generate_ms) AS avg_generate_ms,
  AVG(loaded) AS avg_loaded,
  AVG(unloaded) AS avg_unloaded,
  MAX(resident) AS max_resident
FROM updates
{where_sql}
GROUP BY source
ORDER BY source
"""

SLOWEST_SQL_TEMPLATE = """
SELECT
  ts_ms,
  source,
  observer_lat,
  observer_lon,
  loaded,
  unloaded,
  resident,
  total_ms
FROM updates
{where_sql}
ORDER BY total_ms DESC
LIMIT ?
"""

INSERT_UPDATES_SQL = """
INSERT INTO updates
  (ts_ms, source, observer_lat, observer_lon, loaded, unloaded, resident, generate_ms, total_ms)
VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
"""
