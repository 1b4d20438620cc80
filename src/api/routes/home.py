"""Static pages: home and health check."""

from fastapi import APIRouter, Response, status
from fastapi.responses import HTMLResponse

router = APIRouter()

HOME_PAGE = """<!DOCTYPE html>
<html lang="en">
<head>
    <meta http-equiv="content-type" content="text/html; charset=utf-8">
    <title>Home</title>
</head>
<body>
    <p>Welcome to our newsletter!</p>
    <form action="/subscriptions" method="post">
        <label>Name
            <input type="text" placeholder="Your name" name="name">
        </label>
        <label>Email
            <input type="email" placeholder="you@example.com" name="email">
        </label>
        <button type="submit">Subscribe</button>
    </form>
    <p><a href="/login">Operator login</a></p>
</body>
</html>"""


@router.get("/", response_class=HTMLResponse)
def home() -> HTMLResponse:
    return HTMLResponse(HOME_PAGE)


@router.get("/health_check")
def health_check() -> Response:
    """Liveness probe."""
    return Response(status_code=status.HTTP_200_OK)
