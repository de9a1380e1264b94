# locustfile.py
import os, random, uuid
import requests
from locust import HttpUser, task, between, events

# ------------------- Config -------------------
BASE_LAT = float(os.getenv("BASE_LAT", 48.8566))         # Paris
BASE_LON = float(os.getenv("BASE_LON", 2.3522))
BOX_SPAN_DEG = float(os.getenv("BOX_SPAN_DEG", 0.02))    # ~2 km viewport
PAN_STEP_DEG = float(os.getenv("PAN_STEP_DEG", 0.005))
MAX_DRIFT_DEG = float(os.getenv("MAX_DRIFT_DEG", 0.1))   # keep panning around base

SEARCH_TERMS = ["museum", "church", "park", "tower", "palace", "bridge", "library"]

def clamp(lat, lon):
    lat = max(min(lat, BASE_LAT + MAX_DRIFT_DEG), BASE_LAT - MAX_DRIFT_DEG)
    lon = max(min(lon, BASE_LON + MAX_DRIFT_DEG), BASE_LON - MAX_DRIFT_DEG)
    return lat, lon

def bounds(lat, lon):
    half = BOX_SPAN_DEG / 2
    return {"north": lat + half, "south": lat - half, "east": lon + half, "west": lon - half}

print("[INIT] Locustfile loaded")

class MapUser(HttpUser):
    wait_time = between(0.2, 1.0)

    def on_start(self):
        self.lat = BASE_LAT + random.uniform(-PAN_STEP_DEG, PAN_STEP_DEG)
        self.lon = BASE_LON + random.uniform(-PAN_STEP_DEG, PAN_STEP_DEG)

    @task(5)
    def pan_map(self):
        self.lat += random.uniform(-PAN_STEP_DEG, PAN_STEP_DEG)
        self.lon += random.uniform(-PAN_STEP_DEG, PAN_STEP_DEG)
        self.lat, self.lon = clamp(self.lat, self.lon)
        with self.client.get("/api/landmarks", params=bounds(self.lat, self.lon),
                             name="GET /api/landmarks (pan)", catch_response=True) as resp:
            if resp.status_code != 200:
                resp.failure(f"Unexpected status {resp.status_code}")

    @task(2)
    def search(self):
        self.client.get("/api/landmarks/search", params={"q": random.choice(SEARCH_TERMS)},
                        name="GET /api/landmarks/search")

    @task(1)
    def admin_insert(self):
        lat, lon = clamp(self.lat + random.uniform(-0.001, 0.001), self.lon + random.uniform(-0.001, 0.001))
        payload = {
            "external_id": f"loadtest-{uuid.uuid4().hex[:12]}",
            "title": "Loadtest Memorial",
            "latitude": lat,
            "longitude": lon,
            "category": "historical",
            "source_url": "https://example.invalid/loadtest",
        }
        r = self.client.post("/api/landmarks", json=payload, name="POST /api/landmarks")
        if r.status_code >= 300:
            print(f"[INSERT][ERR] status={r.status_code} body={r.text[:160]}")

@events.test_stop.add_listener
def on_test_stop(environment, **_kwargs):
    try:
        r = requests.get(f"{environment.host}/stats", timeout=5)
        print("\n--- /stats ---\n", r.text)
    except requests.RequestException as e:
        print(f"[STATS][ERR] {e}")
