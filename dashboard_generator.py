"""
Writes the projected view out as a self-contained HTML page (map + card grid)
plus a JSON snapshot of the same state.
"""

import json
import logging
import os
from datetime import datetime, timezone
from typing import Optional

from config import AppConfig
from filters import FilterCriteria
from projector import ViewProjector

logger = logging.getLogger(__name__)


def generate_dashboard(
    projector: ViewProjector,
    config: AppConfig,
    criteria: Optional[FilterCriteria] = None,
    filename: Optional[str] = None,
    show_map: bool = True,
) -> str:
    """Generate the HTML page for the current view and write it to the output directory."""

    os.makedirs(config.output_dir, exist_ok=True)
    view = projector.snapshot()

    if criteria is not None:
        view["criteria"] = {
            "category": criteria.selected_category,
            "amenity_only": criteria.amenity_only,
            "max_distance_km": criteria.max_distance_km,
            "origin": None if criteria.origin is None else {
                "lat": criteria.origin.latitude,
                "lng": criteria.origin.longitude,
            },
        }

    if show_map:
        json_path = os.path.join(config.output_dir, config.data_filename)
        with open(json_path, "w", encoding="utf-8") as f:
            json.dump({
                "generated_at": datetime.now(timezone.utc).isoformat(),
                "total_locations": len(view["cards"]),
                **view,
            }, f, indent=2, ensure_ascii=False)

    now = datetime.now().strftime("%B %d, %Y at %I:%M %p")
    # "</" must not close the inline <script> early
    data_blob = json.dumps(view, ensure_ascii=False).replace("</", "<\\/")

    html = _build_html(data_blob, now, config, show_map)

    html_path = os.path.join(config.output_dir, filename or config.dashboard_filename)
    with open(html_path, "w", encoding="utf-8") as f:
        f.write(html)

    logger.debug(f"Wrote {len(view['cards'])} cards to {html_path}")
    return html_path


def _build_html(data_json: str, generated_at: str, config: AppConfig, show_map: bool) -> str:
    map_div = '<div id="map"></div>' if show_map else ""
    return f"""<!DOCTYPE html>
<html lang="pt">
<head>
<meta charset="UTF-8">
<meta name="viewport" content="width=device-width, initial-scale=1.0">
<title>Locais</title>
<link rel="stylesheet" href="https://unpkg.com/leaflet@1.9.4/dist/leaflet.css">
<link rel="stylesheet" href="https://unpkg.com/leaflet.markercluster@1.5.3/dist/MarkerCluster.css">
<link rel="stylesheet" href="https://unpkg.com/leaflet.markercluster@1.5.3/dist/MarkerCluster.Default.css">
<script src="https://unpkg.com/leaflet@1.9.4/dist/leaflet.js"></script>
<script src="https://unpkg.com/leaflet.markercluster@1.5.3/dist/leaflet.markercluster.js"></script>
<style>
  :root {{
    --bg:      #f6f4ef;
    --surface: #ffffff;
    --border:  #e0ddd5;
    --text:    #22201c;
    --text2:   #6d6a63;
    --like:    #4caf50;
    --dislike: #ef5350;
    --accent:  #0f7c90;
    --radius:  12px;
  }}

  * {{ margin:0; padding:0; box-sizing:border-box; }}

  body {{
    font-family: system-ui, sans-serif;
    background: var(--bg);
    color: var(--text);
    line-height: 1.5;
  }}

  .header {{
    max-width: 1400px;
    margin: 0 auto;
    padding: 2rem 2rem 1rem;
    display: flex;
    justify-content: space-between;
    align-items: flex-end;
    flex-wrap: wrap;
    gap: 1rem;
  }}
  .header h1 {{ font-size: 1.75rem; letter-spacing: -0.03em; }}
  .header .meta {{ font-size: 0.78rem; color: var(--text2); text-align: right; }}

  .notices, .status {{
    max-width: 1400px;
    margin: 0 auto 0.75rem;
    padding: 0 2rem;
    font-size: 0.85rem;
  }}
  .notice {{
    background: #fff8e1;
    border: 1px solid #ffe082;
    border-radius: 8px;
    padding: 0.4rem 0.8rem;
    margin-bottom: 0.4rem;
  }}
  .status {{ color: var(--text2); }}

  #map {{
    max-width: 1400px;
    height: 420px;
    margin: 0 auto 1.5rem;
    border-radius: var(--radius);
  }}

  .grid {{
    max-width: 1400px;
    margin: 0 auto;
    padding: 0 2rem 3rem;
    display: grid;
    grid-template-columns: repeat(auto-fill, minmax(300px, 1fr));
    gap: 1rem;
  }}

  .location {{
    background: var(--surface);
    border: 1px solid var(--border);
    border-radius: var(--radius);
    overflow: hidden;
    display: flex;
    flex-direction: column;
  }}
  .location img {{
    width: 100%;
    height: 180px;
    object-fit: cover;
    background: var(--border);
  }}
  .location-body {{ padding: 1rem 1.25rem; display: flex; flex-direction: column; gap: 0.5rem; }}
  .location h3 {{ font-size: 1rem; }}
  .location p {{ font-size: 0.85rem; color: var(--text2); }}
  .distance {{ font-size: 0.75rem; color: var(--accent); }}

  .progress-bar {{
    display: flex;
    flex-wrap: wrap;
    gap: 0.25rem 1rem;
    font-size: 0.75rem;
  }}
  .bars {{
    width: 100%;
    height: 6px;
    display: flex;
    background: var(--border);
    border-radius: 3px;
    overflow: hidden;
  }}
  .like-bar {{ background: var(--like); }}
  .dislike-bar {{ background: var(--dislike); }}

  .empty-state {{
    grid-column: 1 / -1;
    text-align: center;
    padding: 4rem 2rem;
    color: var(--text2);
  }}

  @media (max-width: 768px) {{
    .header, .notices, .status, .grid {{ padding-left: 1rem; padding-right: 1rem; }}
    .grid {{ grid-template-columns: 1fr; }}
  }}
</style>
</head>
<body>

<div class="header">
  <h1 id="filterTitle"></h1>
  <div class="meta">Updated {generated_at}</div>
</div>

<div class="notices" id="notices"></div>
<div class="status" id="status"></div>
{map_div}
<div class="grid" id="image-grid"></div>

<script>
const VIEW = {data_json};

function esc(s) {{
  return String(s ?? '').replace(/[&<>"']/g, c => ({{
    '&': '&amp;', '<': '&lt;', '>': '&gt;', '"': '&quot;', "'": '&#39;'
  }})[c]);
}}

document.getElementById('filterTitle').textContent = VIEW.title;
document.getElementById('status').textContent = VIEW.status;
document.getElementById('notices').innerHTML =
  VIEW.notices.map(n => `<div class="notice">${{esc(n)}}</div>`).join('');

// ── Map ────────────────────────────────────
const mapDiv = document.getElementById('map');
if (mapDiv) {{
  const map = L.map('map').setView([0, 0], 2);
  L.tileLayer('https://{{s}}.tile.openstreetmap.org/{{z}}/{{x}}/{{y}}.png', {{
    maxZoom: 18,
  }}).addTo(map);

  const cluster = L.markerClusterGroup({{
    maxClusterRadius: {config.cluster_radius_px},
    disableClusteringAtZoom: {config.disable_clustering_at_zoom},
  }});
  map.addLayer(cluster);

  VIEW.markers.forEach(m => {{
    const marker = L.marker([m.lat, m.lng]);
    marker.bindPopup(`
      <div>
        <h2>${{esc(m.title)}}</h2>
        <img src="${{esc(m.src)}}" alt="${{esc(m.title)}}" style="max-width: 100px; height: auto;">
        <p>${{esc(m.description)}}</p>
        <p><strong>Types:</strong> ${{esc(m.types.join(', '))}}</p>
      </div>`);
    cluster.addLayer(marker);
  }});

  if (VIEW.position) {{
    const p = VIEW.position;
    L.marker([p.lat, p.lng]).addTo(map).bindPopup(esc(p.popup));
    L.circle([p.lat, p.lng], {{ radius: p.radius }}).addTo(map);
  }}

  if (VIEW.bounds) {{
    map.fitBounds(VIEW.bounds);
  }} else if (VIEW.center) {{
    map.setView(VIEW.center, 13);
  }}
}}

// ── Cards ──────────────────────────────────
const grid = document.getElementById('image-grid');
if (VIEW.cards.length === 0) {{
  grid.innerHTML = `<div class="empty-state"><h2>${{esc(VIEW.empty_message)}}</h2></div>`;
}} else {{
  grid.innerHTML = VIEW.cards.map(c => `
    <div class="location" data-id="${{esc(c.id)}}">
      <img src="${{esc(c.src)}}" alt="${{esc(c.title)}}" loading="lazy">
      <div class="location-body">
        <h3>${{esc(c.title)}}</h3>
        <p>${{esc(c.description)}}</p>
        ${{c.distance_km !== null ? `<span class="distance">${{c.distance_km}} km</span>` : ''}}
        <div class="progress-bar">
          <span class="likes-count">Likes: ${{c.likes}}</span>
          <span class="dislikes-count">Dislikes: ${{c.dislikes}}</span>
          <div class="bars">
            <div class="like-bar" style="width: ${{c.like_pct}}%;"></div>
            <div class="dislike-bar" style="width: ${{c.dislike_pct}}%;"></div>
          </div>
        </div>
      </div>
    </div>`).join('');
}}
</script>
</body>
</html>"""
