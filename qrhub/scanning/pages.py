"""Static HTML served to anonymous scanners"""

import html

from qrhub.exceptions import PUBLIC_NOT_FOUND_MESSAGE


NOT_FOUND_PAGE = """<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="utf-8">
  <meta name="viewport" content="width=device-width, initial-scale=1">
  <meta name="robots" content="noindex">
  <title>QR Code Not Found - QRHub</title>
  <style>
    body {{ margin: 0; min-height: 100vh; display: flex; align-items: center; justify-content: center;
           font-family: -apple-system, BlinkMacSystemFont, "Segoe UI", Roboto, sans-serif;
           background: linear-gradient(135deg, #667eea 0%, #764ba2 100%); color: #333; }}
    .card {{ background: #fff; border-radius: 16px; padding: 40px; max-width: 420px; text-align: center;
            box-shadow: 0 20px 40px rgba(0, 0, 0, 0.15); }}
    h1 {{ font-size: 22px; margin: 16px 0 8px; }}
    p {{ color: #666; line-height: 1.5; }}
    .brand {{ margin-top: 24px; font-size: 13px; color: #999; }}
  </style>
</head>
<body>
  <div class="card">
    <div style="font-size: 48px">&#128269;</div>
    <h1>{title}</h1>
    <p>The QR code you scanned doesn't exist or is no longer available.</p>
    <p>Please check with the business that provided it.</p>
    <div class="brand">Powered by QRHub</div>
  </div>
</body>
</html>
"""


def render_not_found_page(message: str = PUBLIC_NOT_FOUND_MESSAGE) -> str:
    return NOT_FOUND_PAGE.format(title=html.escape(message))
