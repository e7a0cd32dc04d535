"""Local large language model backend.

This module exposes :class:`LocalTextGenerator`, a generation backend that
runs a Hugging Face Transformers causal language model from a directory on
disk. It lets the letter editor work offline:

* The model and tokenizer load lazily on the first request, so configuring a
  path costs nothing until the backend is actually selected.
* 4-bit quantisation is used when ``bitsandbytes`` and CUDA are available,
  otherwise the model loads in standard precision.
* Generation is synchronous, so :meth:`LocalTextGenerator.generate` runs it in
  a worker thread to keep the request coroutine responsive.
"""

from __future__ import annotations

import asyncio
import logging
import threading
from typing import Any, Dict, Optional

import torch
from transformers import AutoModelForCausalLM, AutoTokenizer

from letterstudio.services.errors import BackendError
from letterstudio.services.generation import GenerationBackend

try:  # ``BitsAndBytesConfig`` requires an optional dependency (bitsandbytes).
    from transformers import BitsAndBytesConfig  # type: ignore
except ImportError:  # pragma: no cover - transformers should always provide this
    BitsAndBytesConfig = None  # type: ignore


LOGGER = logging.getLogger(__name__)


class LocalTextGenerator(GenerationBackend):
    name = "local"

    def __init__(
        self,
        model_path: str,
        *,
        temperature: Optional[float] = 0.7,
        top_p: Optional[float] = 0.95,
        max_new_tokens: int = 1000,
        seed: int = 42,
        use_4bit: bool = True,
    ):
        self.model_path = model_path
        self.temperature = temperature
        self.top_p = top_p
        self.max_new_tokens = int(max_new_tokens or 1000)
        self.seed = seed
        self.use_4bit = use_4bit
        self.model = None
        self.tokenizer = None
        self._load_lock = threading.Lock()

    async def generate(self, prompt: str) -> str:
        try:
            text = await asyncio.to_thread(self.generate_response, prompt)
        except (OSError, RuntimeError, ValueError) as exc:
            LOGGER.warning("Local generation with %s failed: %s", self.model_path, exc)
            raise BackendError(f"Local model error: {exc}", kind="server", provider=self.name) from exc
        if not text:
            raise BackendError("Local model returned an empty response", kind="empty", provider=self.name)
        return text

    def generate_response(self, prompt: str) -> str:
        """Generate a response to ``prompt`` without echoing it back."""
        self._ensure_loaded()
        enc = self._encode(prompt)
        with torch.no_grad():
            out = self.model.generate(**enc, **self._generation_kwargs())
        prompt_len = enc["input_ids"].shape[-1]
        generated_ids = out[0, prompt_len:]
        if generated_ids.numel() == 0:
            return ""
        return self.tokenizer.decode(generated_ids, skip_special_tokens=True).strip()

    def _encode(self, prompt: str):
        # Instruction-tuned checkpoints expect their chat template.
        if getattr(self.tokenizer, "chat_template", None):
            input_ids = self.tokenizer.apply_chat_template(
                [{"role": "user", "content": prompt}],
                add_generation_prompt=True,
                return_tensors="pt",
            ).to(self.model.device)
            return {"input_ids": input_ids, "attention_mask": torch.ones_like(input_ids)}
        return self.tokenizer(prompt, return_tensors="pt").to(self.model.device)

    def _generation_kwargs(self) -> Dict[str, Any]:
        kwargs: Dict[str, Any] = {
            "max_new_tokens": self.max_new_tokens,
            "do_sample": True,
            "pad_token_id": self.tokenizer.pad_token_id,
        }
        # Unset sampling parameters fall back to the model's generation config.
        if self.temperature is not None:
            kwargs["temperature"] = self.temperature
        if self.top_p is not None:
            kwargs["top_p"] = self.top_p
        return kwargs

    def _ensure_loaded(self) -> None:
        with self._load_lock:
            if self.model is not None:
                return

            torch.manual_seed(self.seed)
            if torch.cuda.is_available():
                torch.cuda.manual_seed_all(self.seed)

            model_kwargs: Dict[str, Any] = {"device_map": "auto", "torch_dtype": "auto"}
            quantization_config = self._build_quantization_config()
            if quantization_config is not None:
                model_kwargs["quantization_config"] = quantization_config

            LOGGER.info("Loading local model from %s", self.model_path)
            model = AutoModelForCausalLM.from_pretrained(self.model_path, **model_kwargs)
            model.eval()

            tokenizer = AutoTokenizer.from_pretrained(self.model_path)
            if tokenizer.pad_token is None:
                tokenizer.pad_token = tokenizer.eos_token
            self.tokenizer = tokenizer
            self.model = model

    def _build_quantization_config(self) -> Optional[BitsAndBytesConfig]:
        """Return a 4-bit quantisation config when supported."""

        if not self.use_4bit:
            return None

        if BitsAndBytesConfig is None:
            LOGGER.info("transformers BitsAndBytesConfig unavailable; using full precision model loading.")
            return None

        if not torch.cuda.is_available():
            LOGGER.info("CUDA is not available; skipping 4-bit quantisation.")
            return None

        try:  # Ensure optional dependency is present before configuring.
            import bitsandbytes  # type: ignore  # noqa: F401
        except ImportError:
            LOGGER.info("bitsandbytes not installed; using full precision model loading.")
            return None

        LOGGER.info("Loading model with 4-bit quantisation enabled.")
        return BitsAndBytesConfig(
            load_in_4bit=True,
            bnb_4bit_use_double_quant=True,
            bnb_4bit_quant_type="nf4",
            bnb_4bit_compute_dtype=torch.float16,
        )
