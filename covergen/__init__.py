"""
Cover-image composition engine.

Modules:
- settings: process-wide render defaults read from the environment
- config: request validation and defaults
- assets: remote asset fetching
- rasters: decoding, cover fit, fit-to-height and border trim
- canvas: canvas sizing and background cover fit
- logo: logo normalization (isolated render with direct-resize fallback)
- layers: texture, gradient, brand wash, logo and watermark layers
- compositor: flattening and JPEG encoding
- core: pipeline orchestration
- api: HTTP entry point
"""
