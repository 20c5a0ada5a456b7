# Routes package init
"""
Handwritten Note OCR — API Routes Package
===========================================

Route Inventory:
    - process.py:  POST /api/process-note            (image → structured note)
    - images.py:   GET  /api/images/{image_id}       (temporary copy of an upload)
    - tools.py:    GET  /api/tools                   (tool listing)
                   POST /api/tools/process_handwritten_note
    - health.py:   GET  /api/health                  (service health check)

Design Principle:
    Routes are THIN: they read the request, call a service, and return its
    result. Errors propagate to the global handlers in main.py.
"""
