from datetime import date, timedelta

from memory_profiler import profile
from campus_booking.main import app
from fastapi.testclient import TestClient

# Create a test client for the FastAPI app
client = TestClient(app)


@profile
def run_scenario():
    """
    Exercise the read-heavy endpoints while tracking memory.
    Nothing is asserted; this is only for profiling.
    """
    client.get("/health")
    facilities = client.get("/facilities/").json()
    day = date.today() + timedelta(days=1)
    for facility in facilities:
        client.get(
            "/availability/",
            params={"facility_id": facility["id"], "date": day.isoformat()},
        )
        client.get(
            "/availability/week",
            params={"facility_id": facility["id"], "start_date": day.isoformat()},
        )


if __name__ == "__main__":
    run_scenario()
