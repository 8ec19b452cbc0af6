from __future__ import annotations

import json
import os
import re
import threading
import time
import unicodedata
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FutureTimeout
from dataclasses import dataclass, replace
from typing import List, Tuple, Optional, Literal, Sequence

import requests
from dotenv import load_dotenv

DEFAULT_MODEL = "openai/gpt-4o-mini"
DEFAULT_BASE_URL = "https://openrouter.ai/api/v1"
DEFAULT_SITE_URL = "http://localhost:8501"
APP_TITLE = "Word Search Puzzle Generator"

MIN_WORD_LEN = 3
MAX_WORD_LEN = 12


# -----------------------------------------------------------------------------
# Simple logger hook (mirrors grid_engine)
# -----------------------------------------------------------------------------
_LOGGER = None  # type: Optional[callable]


def set_logger(fn) -> None:
    """Allow the UI to inject a logger callback: fn(text: str)."""
    global _LOGGER
    _LOGGER = fn


def _log(msg: str) -> None:
    if _LOGGER:
        try:
            _LOGGER(msg)
            return
        except Exception:
            pass
    print(msg)


# -----------------------------------------------------------------------------
# Errors
# -----------------------------------------------------------------------------
class ConfigurationError(ValueError):
    """The upstream endpoint cannot be called at all (e.g. no API key)."""


class UpstreamError(RuntimeError):
    """Transport failure or non-success HTTP status from the text endpoint."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


# -----------------------------------------------------------------------------
# Word tokens
# -----------------------------------------------------------------------------
# Latin letters NFKD does not decompose
_TRANSLIT = str.maketrans({
    "œ": "oe", "æ": "ae", "ø": "o", "ß": "ss", "đ": "d",
    "ł": "l", "þ": "th", "ð": "d", "ı": "i",
})


def normalize_word(text: str) -> str:
    """
    Lowercase, trim, strip diacritics and fold ligatures
    ("Crème" -> "creme", "Œuf" -> "oeuf").
    Applying it twice gives the same result as applying it once.
    """
    if not text:
        return ""
    decomposed = unicodedata.normalize("NFKD", str(text))
    stripped = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return stripped.lower().translate(_TRANSLIT).strip()


def is_valid_word(token: str, min_len: int = MIN_WORD_LEN, max_len: int = MAX_WORD_LEN) -> bool:
    """
    ASCII letters only, length within [min_len, max_len]. Grid cells hold
    A-Z, so anything else would be dropped or mangled at placement.
    """
    return min_len <= len(token) <= max_len and token.isascii() and token.isalpha()


_FENCE_RE = re.compile(r"```(?:json)?\n?|\n?```")
_QUOTED_RE = re.compile(r'"([^"]+)"')


def parse_word_list(text: Optional[str]) -> Optional[List[str]]:
    """
    Pull candidate words out of a model reply.

    First try the reply as a JSON array (code fences removed). If that fails,
    take every double-quoted substring. A well-formed empty array gives [];
    None means the reply could not be read at all.
    """
    if not text:
        return None
    clean = _FENCE_RE.sub("", text).strip()
    try:
        data = json.loads(clean)
    except ValueError:
        data = None
    if isinstance(data, dict):
        # {"words": [...]} style replies
        data = next((v for v in data.values() if isinstance(v, list)), None)
    if isinstance(data, list):
        words = [w for w in data if isinstance(w, str)]
        if words or not data:
            return words
    quoted = _QUOTED_RE.findall(text)
    return quoted or None


# -----------------------------------------------------------------------------
# Upstream client (OpenRouter chat completions)
# -----------------------------------------------------------------------------
Looseness = Literal["strict", "relaxed"]


@dataclass(frozen=True)
class WordRequest:
    """What we ask the text endpoint for."""
    theme: str
    exclusions: Tuple[str, ...]
    count: int
    looseness: Looseness = "strict"


@dataclass
class ClientConfig:
    api_key: str
    model: str = DEFAULT_MODEL
    base_url: str = DEFAULT_BASE_URL
    site_url: str = DEFAULT_SITE_URL
    timeout: float = 30.0

    @classmethod
    def from_env(cls) -> "ClientConfig":
        """
        Read OPENROUTER_* settings from the environment (and a .env file if present).
        API keys are only ever read from the environment.
        """
        load_dotenv()
        api_key = os.getenv("OPENROUTER_API_KEY", "").strip()
        if not api_key:
            raise ConfigurationError(
                "OpenRouter API key is missing. Please set OPENROUTER_API_KEY."
            )
        try:
            timeout = float(os.getenv("OPENROUTER_TIMEOUT", "30"))
        except ValueError as e:
            raise ConfigurationError(f"OPENROUTER_TIMEOUT must be a number: {e}") from e
        return cls(
            api_key=api_key,
            model=os.getenv("OPENROUTER_MODEL", DEFAULT_MODEL),
            base_url=os.getenv("OPENROUTER_BASE_URL", DEFAULT_BASE_URL).rstrip("/"),
            site_url=os.getenv("SITE_URL", DEFAULT_SITE_URL),
            timeout=timeout,
        )


STRICT_SYSTEM_PROMPT = (
    "You are a word search puzzle generator. Generate simple, family-friendly words "
    "that are suitable for all ages. Respond only with a JSON array of words, "
    "no other text or formatting."
)
RELAXED_SYSTEM_PROMPT = (
    "You are a word search puzzle generator. Generate family-friendly, simple, "
    "unique words. Respond with JSON array only."
)


def build_messages(request: WordRequest) -> List[dict]:
    """Chat messages for one request. Relaxed requests use a shorter, looser prompt."""
    excluded = ", ".join(request.exclusions)
    if request.looseness == "relaxed":
        user = (
            f'Generate {request.count} simple and appropriate words for all ages related to '
            f'the theme "{request.theme}".\n'
        )
        if excluded:
            user += f"Avoid repeating these recent words: {excluded}.\n"
        user += 'Respond only with a JSON array of words like ["word1", "word2"].'
        return [
            {"role": "system", "content": RELAXED_SYSTEM_PROMPT},
            {"role": "user", "content": user},
        ]

    user = (
        f"**CRITICAL: Generate EXACTLY {request.count} *unique* words.**\n\n"
        "The words should be simple and fun, suitable for all ages, and for a word search puzzle.\n\n"
        "Make sure the words are:\n"
        f"- Between {MIN_WORD_LEN}-{MAX_WORD_LEN} letters long\n"
        "- Single words with letters only (no spaces, hyphens or digits)\n"
        "- Common and recognizable\n"
        "- Appropriate for all ages\n"
        "- Not proper nouns (unless they are very well-known)\n"
        "- Varied in length for puzzle difficulty\n\n"
        f'**Prioritize words related to the theme "{request.theme}".**\n'
    )
    if excluded:
        user += f"\nDo NOT include any of the following words in your response: {excluded}.\n"
    user += '\nRespond only with a JSON array of words like: ["word1", "word2", "word3"]'
    return [
        {"role": "system", "content": STRICT_SYSTEM_PROMPT},
        {"role": "user", "content": user},
    ]


class OpenRouterClient:
    """
    Minimal chat-completions client. One call in flight at a time.

    complete() returns the reply text, or None when the reply has no content.
    It raises UpstreamError on transport failures and non-2xx statuses.
    """

    def __init__(self, config: ClientConfig, session: Optional[requests.Session] = None):
        if not config.api_key:
            raise ConfigurationError("OpenRouter API key is missing. Please set OPENROUTER_API_KEY.")
        self.config = config
        self.session = session if session is not None else requests.Session()

    def _headers(self) -> dict:
        return {
            "Authorization": f"Bearer {self.config.api_key}",
            "HTTP-Referer": self.config.site_url,
            "X-Title": APP_TITLE,
            "Content-Type": "application/json",
        }

    def _payload(self, request: WordRequest) -> dict:
        payload = {
            "model": self.config.model,
            "messages": build_messages(request),
            "temperature": 0.7,
            "max_tokens": 4000,
        }
        if request.looseness == "relaxed":
            payload["temperature"] = 0.9
            payload["presence_penalty"] = 1.2
        return payload

    def complete(self, request: WordRequest) -> Optional[str]:
        url = f"{self.config.base_url}/chat/completions"
        try:
            response = self.session.post(
                url,
                json=self._payload(request),
                headers=self._headers(),
                timeout=self.config.timeout,
            )
        except requests.RequestException as e:
            raise UpstreamError(f"{type(e).__name__}: {e}") from e

        if not response.ok:
            _log(f"[words] OpenRouter API error {response.status_code}: {response.text[:300]}")
            raise UpstreamError(f"HTTP {response.status_code}", status_code=response.status_code)

        try:
            data = response.json()
        except ValueError:
            return None
        choices = (data.get("choices") or []) if isinstance(data, dict) else []
        if not choices:
            return None
        content = (choices[0].get("message") or {}).get("content")
        return content or None

    def close(self) -> None:
        """Drop the HTTP session (aborts pooled connections of an abandoned request)."""
        self.session.close()


# -----------------------------------------------------------------------------
# Acquisition state machine
# -----------------------------------------------------------------------------
Phase = Literal["requesting", "parsing", "stuck", "relaxed", "done", "aborted"]
TERMINAL_PHASES = ("done", "aborted")


@dataclass(frozen=True)
class AcquisitionSettings:
    max_retries: int = 10
    retry_delay: float = 10.0          # seconds between retries
    stuck_threshold: int = 3           # retries before the relaxed prompt may fire
    max_exclusions: int = 100          # most recent words listed in strict prompts
    relaxed_exclusions: int = 20       # most recent words listed in the relaxed prompt
    min_len: int = MIN_WORD_LEN
    max_len: int = MAX_WORD_LEN


@dataclass(frozen=True)
class AcquisitionState:
    """
    Everything one acquisition run knows. Transitions never mutate it;
    they return a new state.
    """
    theme: str
    target: int
    words: Tuple[str, ...] = ()
    retry: int = 0
    warning: Optional[str] = None
    phase: Phase = "requesting"
    relaxed_used: bool = False
    last_added: int = 0
    pending_text: Optional[str] = None

    @property
    def needed(self) -> int:
        return max(0, self.target - len(self.words))


@dataclass
class AcquisitionResult:
    words: List[str]
    warning: Optional[str] = None
    attempts: int = 0
    relaxed_used: bool = False


def start_state(theme: str, target: int) -> AcquisitionState:
    return AcquisitionState(theme=theme, target=target)


def merge_words(existing: Sequence[str], candidates: Sequence[str],
                settings: AcquisitionSettings) -> Tuple[Tuple[str, ...], int]:
    """Normalize, filter and append candidates not seen before. Returns (words, added)."""
    seen = set(existing)
    out = list(existing)
    for raw in candidates:
        if not isinstance(raw, str):
            continue
        token = normalize_word(raw)
        if not is_valid_word(token, settings.min_len, settings.max_len):
            continue
        if token in seen:
            continue
        seen.add(token)
        out.append(token)
    return tuple(out), len(out) - len(existing)


def build_request(state: AcquisitionState, settings: AcquisitionSettings) -> WordRequest:
    """Request for the current phase. Exclusion lists keep only the most recent words."""
    if state.phase in ("stuck", "relaxed"):
        keep, looseness = settings.relaxed_exclusions, "relaxed"
    else:
        keep, looseness = settings.max_exclusions, "strict"
    exclusions = state.words[-keep:] if keep > 0 else ()
    return WordRequest(theme=state.theme, exclusions=tuple(exclusions), count=state.needed,
                       looseness=looseness)


def _advance(state: AcquisitionState, settings: AcquisitionSettings, **changes) -> AcquisitionState:
    """Consume one retry and decide whether another request is due."""
    nxt = replace(state, retry=state.retry + 1, pending_text=None, **changes)
    if nxt.needed == 0 or nxt.retry >= settings.max_retries:
        return replace(nxt, phase="done")
    return replace(nxt, phase="requesting")


def on_transport_error(state: AcquisitionState, error: UpstreamError) -> AcquisitionState:
    attempt = state.retry + 1
    if error.status_code is not None:
        warning = f"AI API error on retry {attempt}: {error.status_code}. Could not fetch all words."
    else:
        warning = f"Network error on retry {attempt}: {error}."
    return replace(state, phase="aborted", warning=warning, pending_text=None)


def on_cancelled(state: AcquisitionState) -> AcquisitionState:
    return replace(state, phase="aborted", pending_text=None,
                   warning=f"Word generation was cancelled after {state.retry} attempt(s).")


def on_response(state: AcquisitionState, text: Optional[str]) -> AcquisitionState:
    """A reply arrived (possibly empty); parsing happens next."""
    return replace(state, phase="parsing", pending_text=text)


def on_parsed(state: AcquisitionState, settings: AcquisitionSettings) -> AcquisitionState:
    """Parse the pending reply, merge new words and pick the next phase."""
    attempt = state.retry + 1
    if not state.pending_text:
        return _advance(state, settings, last_added=0,
                        warning=f"AI did not return a valid response on retry {attempt}.")

    candidates = parse_word_list(state.pending_text)
    if candidates is None:
        return _advance(state, settings, last_added=0,
                        warning=f"Could not parse AI response on retry {attempt}.")

    words, added = merge_words(state.words, candidates, settings)
    nxt = replace(state, words=words, last_added=added)
    if added == 0 and nxt.needed > 0:
        if state.retry >= settings.stuck_threshold and not state.relaxed_used:
            return replace(nxt, phase="stuck", pending_text=None)
        return _advance(nxt, settings)
    return _advance(nxt, settings)


def on_relaxed_response(state: AcquisitionState, text: Optional[str],
                        settings: AcquisitionSettings) -> AcquisitionState:
    """Best-effort merge of the relaxed reply. The run always ends here."""
    words, added = merge_words(state.words, parse_word_list(text) or [], settings)
    return replace(state, words=words, last_added=added, phase="done",
                   relaxed_used=True, pending_text=None)


def finalize(state: AcquisitionState) -> AcquisitionResult:
    """First `target` words in collection order, plus a warning when anything fell short."""
    words = list(state.words[: state.target])
    warning = state.warning
    if len(words) < state.target and not warning:
        warning = (
            f"AI could only generate {len(words)} unique words out of {state.target} "
            "requested after multiple attempts. Some puzzles may have fewer words."
        )
    return AcquisitionResult(words=words, warning=warning, attempts=state.retry,
                             relaxed_used=state.relaxed_used)


# -----------------------------------------------------------------------------
# Driver
# -----------------------------------------------------------------------------
def validate_target(theme: str, target_count: int) -> str:
    """Trimmed theme, or ValueError before anything is requested."""
    theme = (theme or "").strip()
    if not theme:
        raise ValueError("theme is required")
    if target_count <= 0:
        raise ValueError(f"target_count must be positive, got {target_count}")
    return theme


class _Cancelled(Exception):
    """The cancel event fired while a call was in flight."""


class WordAcquirer:
    """
    Runs the acquisition state machine against a chat client.

    The client only needs complete(WordRequest) -> Optional[str] and may raise
    UpstreamError. An optional close() is called to abort a call still in
    flight when the run is cancelled. Each acquire() call owns its own state.
    """

    poll_interval = 0.1

    def __init__(self, client, settings: Optional[AcquisitionSettings] = None):
        self.client = client
        self.settings = settings or AcquisitionSettings()

    def _wait(self, cancel: Optional[threading.Event]) -> bool:
        """Sleep retry_delay; return True if cancelled meanwhile."""
        delay = self.settings.retry_delay
        if cancel is not None:
            return cancel.wait(delay) if delay > 0 else cancel.is_set()
        if delay > 0:
            time.sleep(delay)
        return False

    def _call(self, request: WordRequest, cancel: Optional[threading.Event]) -> Optional[str]:
        """
        client.complete(request). With a cancel event the call runs on a worker
        thread; if the event fires first the client is closed and _Cancelled raised.
        """
        if cancel is None:
            return self.client.complete(request)
        pool = ThreadPoolExecutor(max_workers=1)
        try:
            future = pool.submit(self.client.complete, request)
            while True:
                try:
                    return future.result(timeout=self.poll_interval)
                except FutureTimeout:
                    if cancel.is_set() and not future.done():
                        close = getattr(self.client, "close", None)
                        if close is not None:
                            close()
                        raise _Cancelled()
        finally:
            pool.shutdown(wait=False)

    def _relaxed(self, state: AcquisitionState,
                 cancel: Optional[threading.Event]) -> AcquisitionState:
        _log(f"[words] attempt {state.retry + 1}: AI is stuck, trying relaxed prompt")
        state = replace(state, phase="relaxed")
        request = build_request(state, self.settings)
        try:
            text = self._call(request, cancel)
        except UpstreamError as e:
            _log(f"[words] relaxed fetch failed: {e}")
            text = None
        nxt = on_relaxed_response(state, text, self.settings)
        _log(f"[words] relaxed prompt added {nxt.last_added} words; total {len(nxt.words)}")
        return nxt

    def acquire(self, theme: str, target_count: int,
                cancel: Optional[threading.Event] = None) -> AcquisitionResult:
        theme = validate_target(theme, target_count)
        state = start_state(theme, target_count)
        while state.phase not in TERMINAL_PHASES:
            if cancel is not None and cancel.is_set():
                state = on_cancelled(state)
                break

            if state.phase == "stuck":
                try:
                    state = self._relaxed(state, cancel)
                except _Cancelled:
                    _log("[words] cancelled while waiting for the relaxed reply")
                    state = on_cancelled(state)
                break

            attempt = state.retry + 1
            request = build_request(state, self.settings)
            _log(
                f"[words] attempt {attempt}: requesting {request.count} words for theme "
                f'"{theme}" (collected {len(state.words)})'
            )
            try:
                text = self._call(request, cancel)
            except UpstreamError as e:
                _log(f"[words] upstream error on attempt {attempt}: {e}")
                state = on_transport_error(state, e)
                break
            except _Cancelled:
                _log(f"[words] cancelled while waiting for attempt {attempt}")
                state = on_cancelled(state)
                break

            state = on_parsed(on_response(state, text), self.settings)
            if state.last_added == 0 and state.needed > 0:
                _log(f"[words] no new unique words on attempt {attempt}")
            else:
                _log(f"[words] added {state.last_added} new words; total {len(state.words)}")

            if state.phase == "requesting" and self._wait(cancel):
                state = on_cancelled(state)

        result = finalize(state)
        if result.warning:
            _log(f"[words] WARNING: {result.warning}")
        return result


def acquire_words(
    theme: str,
    target_count: int,
    client=None,
    settings: Optional[AcquisitionSettings] = None,
    cancel: Optional[threading.Event] = None,
) -> AcquisitionResult:
    """
    Collect up to target_count unique theme words.
    Builds an OpenRouterClient from the environment when no client is given,
    and closes it again when the run ends.
    """
    if client is not None:
        return WordAcquirer(client, settings).acquire(theme, target_count, cancel=cancel)
    validate_target(theme, target_count)
    own = OpenRouterClient(ClientConfig.from_env())
    try:
        return WordAcquirer(own, settings).acquire(theme, target_count, cancel=cancel)
    finally:
        own.close()
