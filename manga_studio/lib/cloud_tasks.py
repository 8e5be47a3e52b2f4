# manga_studio/lib/cloud_tasks.py
from __future__ import annotations

import datetime
import json

from google.cloud import tasks_v2
from google.protobuf import timestamp_pb2

from manga_studio.config import config

_tasks = None
def _client() -> tasks_v2.CloudTasksClient:
    global _tasks
    if _tasks is None:
        _tasks = tasks_v2.CloudTasksClient()
    return _tasks


def create_task(*, queue: str, url: str, payload: dict, schedule_in_seconds: int = 0, deadline_seconds: int = 600):
    """
    Create an HTTP task targeting a FastAPI worker endpoint.
    Assumes OIDC auth is not used; protect via network/IAP/firewall as needed.
    """
    client = _client()
    parent = client.queue_path(config.gcp_project, config.gcp_location, queue)

    body = json.dumps(payload).encode("utf-8")
    task = {
        "http_request": {
            "http_method": tasks_v2.HttpMethod.POST,
            "url": url,
            "headers": {"Content-Type": "application/json"},
            "body": body,
        },
        "dispatch_deadline": {"seconds": deadline_seconds},
    }

    if schedule_in_seconds > 0:
        d = datetime.datetime.now(datetime.timezone.utc) + datetime.timedelta(seconds=schedule_in_seconds)
        ts = timestamp_pb2.Timestamp()
        ts.FromDatetime(d)
        task["schedule_time"] = ts

    return client.create_task(parent=parent, task=task)
