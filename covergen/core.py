import logging
from concurrent.futures import FIRST_EXCEPTION, ThreadPoolExecutor, wait
from typing import Any, Dict, Optional

from .assets import AssetFetcher
from .canvas import prepare_background
from .compositor import EncodedImage, compose
from .config import CompositionConfig, resolve_config
from .layers import build_layer_stack
from .logo import LogoNormalizer
from .settings import RenderDefaults


logger = logging.getLogger(__name__)


class CoverPipeline:
    """
    Orchestrates one cover-image composition:
    - resolve the request into a `CompositionConfig`
    - fetch background and logo concurrently
    - resolve the canvas and cover-fit the background
    - normalize the logo (isolated render, else direct resize)
    - build the layer stack and flatten it to JPEG

    The pipeline holds no per-request state, so one instance can serve
    concurrent requests.
    """

    def __init__(
        self,
        defaults: Optional[RenderDefaults] = None,
        fetcher: Optional[AssetFetcher] = None,
        logo_normalizer: Optional[LogoNormalizer] = None,
    ) -> None:
        self.defaults = defaults or RenderDefaults()
        self.fetcher = fetcher or AssetFetcher(timeout=self.defaults.fetch_timeout)
        self.logo_normalizer = logo_normalizer or LogoNormalizer.from_defaults(self.defaults)

    def run(self, data: Dict[str, Any]) -> EncodedImage:
        config = resolve_config(data, self.defaults)
        return self.compose(config)

    def compose(self, config: CompositionConfig) -> EncodedImage:
        background_bytes, logo_bytes = self._fetch_sources(config)

        background, canvas = prepare_background(background_bytes, config)
        logo = self.logo_normalizer.normalize(
            logo_bytes,
            canvas=canvas,
            target_height=config.logo_height,
            source_url=config.logo,
        )

        layers = build_layer_stack(
            config,
            canvas,
            logo.image,
            fetcher=self.fetcher,
            defaults=self.defaults,
        )
        logger.info(
            "Composing %dx%d canvas: logo %dx%d via %s path, layers=%s",
            canvas.width,
            canvas.height,
            logo.width,
            logo.height,
            logo.path.value,
            [layer.name for layer in layers],
        )
        return compose(background, layers, quality=config.quality)

    def _fetch_sources(self, config: CompositionConfig):
        # Neither fetch depends on the other; the first failure propagates
        # without waiting for the other fetch to finish.
        pool = ThreadPoolExecutor(max_workers=2)
        try:
            background = pool.submit(self.fetcher.fetch, config.background)
            logo = pool.submit(self.fetcher.fetch, config.logo)
            done, _ = wait([background, logo], return_when=FIRST_EXCEPTION)
            for future in (background, logo):
                if future in done and future.exception() is not None:
                    raise future.exception()
            return background.result(), logo.result()
        finally:
            pool.shutdown(wait=False, cancel_futures=True)
