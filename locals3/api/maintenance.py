from fastapi import Request
from fastapi.responses import HTMLResponse
from starlette.middleware.base import BaseHTTPMiddleware

MAINTENANCE_PAGE = """<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>Maintenance In Progress</title>
    <style>
        body {
            font-family: -apple-system, BlinkMacSystemFont, "Segoe UI", Roboto, Arial, sans-serif;
            display: flex;
            justify-content: center;
            align-items: center;
            height: 100vh;
            margin: 0;
            background-color: #f7f9fc;
            color: #333;
        }
        .container {
            text-align: center;
            padding: 2rem;
            background: white;
            border-radius: 8px;
            box-shadow: 0 4px 6px rgba(0, 0, 0, 0.1);
            max-width: 500px;
        }
        h1 { color: #d9534f; }
    </style>
</head>
<body>
    <div class="container">
        <h1>Maintenance In Progress</h1>
        <p>The storage service is temporarily unavailable while we carry out maintenance.
        Please try again later.</p>
    </div>
</body>
</html>
"""


class MaintenanceModeMiddleware(BaseHTTPMiddleware):
    """Answers every request with the maintenance page while enabled."""

    def __init__(self, app, enabled: bool = False):
        super().__init__(app)
        self.enabled = enabled

    async def dispatch(self, request: Request, call_next):
        if not self.enabled:
            return await call_next(request)
        request.state.operation = "Maintenance"
        return HTMLResponse(
            MAINTENANCE_PAGE, status_code=503, headers={"Retry-After": "3600"}
        )
