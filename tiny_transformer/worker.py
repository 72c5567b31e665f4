"""
Forward-Pass Worker

The request/response boundary between a host application and the engine.
A host sends one ForwardRequest and gets back either the serialized
ForwardArtifacts or {"error": message}.

Weights are the expensive part of a request, and only the seed (and the
architecture) determine them. The worker keeps a single cached weight set, so
changing temperature, top_k, the view or the mask reruns the pass without
rebuilding weights. A different seed evicts the cached set.

The cache has one writer: requests are handled on the worker's single
background thread via submit(), and the check-replace-use sequence is also
guarded by a lock for callers that use handle() directly from several threads.

Classes:
    ForwardRequest: Wire schema for one request
    ErrorResponse: Wire schema for a failure
    WeightCache: Single-entry weight cache keyed by seed
    ForwardWorker: Handles requests, synchronously or on a background thread
"""

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, Dict, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field

from tiny_transformer.config import ForwardOptions, Hyperparameters, HyperparametersModel
from tiny_transformer.model import TinyTransformer
from tiny_transformer.weights import TransformerWeights, init_weights

logger = logging.getLogger(__name__)


class ForwardRequest(BaseModel):
    """
    One forward-pass request.

    Accepts the camelCase keys used by browser hosts (seqLen, topK,
    layerView, headView, maskIndex, hyper) and the snake_case field names.
    seq_len, when given, overrides hyperparameters.seq_len.
    """

    model_config = ConfigDict(populate_by_name=True)

    text: str
    seq_len: Optional[int] = Field(None, alias="seqLen")
    temperature: float = 0.7
    top_k: int = Field(10, alias="topK")
    layer_view: int = Field(0, alias="layerView")
    head_view: int = Field(0, alias="headView")
    mask_index: Optional[int] = Field(None, alias="maskIndex")
    seed: int = 1337
    hyperparameters: HyperparametersModel = Field(
        default_factory=HyperparametersModel, alias="hyper"
    )

    def to_hyperparameters(self) -> Hyperparameters:
        hyper = self.hyperparameters.to_hyperparameters()
        if self.seq_len is not None:
            hyper = hyper.replace(seq_len=self.seq_len)
        return hyper

    def to_options(self) -> ForwardOptions:
        return ForwardOptions(
            temperature=self.temperature,
            top_k=self.top_k,
            layer_view=self.layer_view,
            head_view=self.head_view,
            mask_index=self.mask_index,
        )


class ErrorResponse(BaseModel):
    error: str


class WeightCache:
    """
    Holds at most one weight set, keyed by the seed it was drawn from.

    The hyperparameters are part of the key as well: weights drawn for one
    architecture cannot serve another, even with the same seed.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._key: Optional[Tuple[int, Hyperparameters]] = None
        self._weights: Optional[TransformerWeights] = None
        self.hits = 0
        self.misses = 0

    @property
    def cached_seed(self) -> Optional[int]:
        return None if self._key is None else self._key[0]

    def get(self, hyper: Hyperparameters, seed: int) -> TransformerWeights:
        """Return cached weights for (seed, hyper), building them on a miss."""
        key = (seed, hyper)
        with self._lock:
            if self._key == key and self._weights is not None:
                self.hits += 1
                logger.debug("Weight cache hit for seed %d", seed)
                return self._weights

            self.misses += 1
            logger.debug(
                "Weight cache miss for seed %d (cached seed: %s)",
                seed,
                self.cached_seed,
            )
            weights = init_weights(hyper, seed)
            self._key = key
            self._weights = weights
            return weights

    def clear(self) -> None:
        with self._lock:
            self._key = None
            self._weights = None


class ForwardWorker:
    """
    Serves forward-pass requests.

    Example:
        with ForwardWorker() as worker:
            future = worker.submit({"text": "Hi!", "seqLen": 16, "seed": 1337})
            response = future.result()
    """

    def __init__(self, cache: Optional[WeightCache] = None):
        self.cache = cache if cache is not None else WeightCache()
        self._executor = ThreadPoolExecutor(
            max_workers=1, thread_name_prefix="tiny-transformer-worker"
        )

    def handle(
        self, request: Union[ForwardRequest, Dict[str, Any]]
    ) -> Dict[str, Any]:
        """
        Run one request to completion.

        Returns:
            The serialized ForwardArtifacts, or {"error": message} if the
            request is invalid or the pass fails
        """
        try:
            if not isinstance(request, ForwardRequest):
                request = ForwardRequest.model_validate(request)
            hyper = request.to_hyperparameters().validate()
            options = request.to_options().validate(hyper)
            weights = self.cache.get(hyper, request.seed)
            artifacts = TinyTransformer(weights).run(request.text, options)
            return artifacts.to_dict()
        except Exception as error:
            logger.error("Forward request failed: %s", error)
            return ErrorResponse(error=str(error) or type(error).__name__).model_dump()

    def submit(self, request: Union[ForwardRequest, Dict[str, Any]]) -> Future:
        """Queue a request on the worker thread; the future yields handle()'s result."""
        return self._executor.submit(self.handle, request)

    def close(self) -> None:
        self._executor.shutdown(wait=True)

    def __enter__(self) -> "ForwardWorker":
        return self

    def __exit__(self, exc_type, exc_value, traceback) -> None:
        self.close()
