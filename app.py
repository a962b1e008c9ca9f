# app.py
import logging
import re
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional

from fastapi import Depends, FastAPI, HTTPException, Path, Query, Request
from fastapi.responses import JSONResponse

import config
from cache import ExtractionCache
from controller import Controller
from fetcher import Fetcher, create_http_client
from models import ApiResponse, ErrorResponse, HealthResponse

# Configure logging
logging.basicConfig(level=config.LOG_LEVEL)
logger = logging.getLogger(__name__)

ID_PATTERN = re.compile(r'^[A-Za-z0-9_-]+$')
EPISODE_ID_PATTERN = re.compile(r'^[A-Za-z0-9-]+-\d+x\d+$')
EPISODE_PATTERN = re.compile(r'^(?:\d+x)?\d+$')

ERROR_RESPONSES = {
    400: {"model": ErrorResponse, "description": "Invalid parameters"},
    404: {"model": ErrorResponse, "description": "Content not found on the source site"},
    500: {"model": ErrorResponse, "description": "Extraction error"},
    502: {"model": ErrorResponse, "description": "Failed to fetch data from source"},
    503: {"model": ErrorResponse, "description": "Source unavailable, try again later"},
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    client = create_http_client()
    app.state.controller = Controller(Fetcher(client), ExtractionCache())
    logger.info(f"Catalog API started against {config.BASE_URL}")
    try:
        yield
    finally:
        await client.aclose()


# Initialize FastAPI app
app = FastAPI(
    title="Anime Catalog API",
    description="Scrapes series, movies, episodes and stream sources from animesalt.cc and serves them as JSON.",
    version="1.0.0",
    lifespan=lifespan,
)


def get_controller(request: Request) -> Controller:
    return request.app.state.controller


@app.exception_handler(HTTPException)
async def http_error_handler(request: Request, exc: HTTPException):
    body = ErrorResponse(error=str(exc.detail), code=exc.status_code)
    return JSONResponse(status_code=exc.status_code, content={"success": False, **body.model_dump()})


def respond(result: dict) -> dict:
    if not result["success"]:
        raise HTTPException(status_code=result.get("status_code", 500), detail=result["error"])
    return result


def validate_id(value: str, name: str = "id") -> str:
    value = value.strip()
    if not value or not ID_PATTERN.match(value):
        raise HTTPException(status_code=400, detail=f"Invalid {name}: only letters, digits, '-' and '_' are allowed")
    return value


def validate_language(lang: str) -> str:
    lang = lang.strip().lower()
    if lang not in config.SUPPORTED_LANGUAGES:
        raise HTTPException(status_code=400, detail=f"Invalid language. Supported languages: {', '.join(config.SUPPORTED_LANGUAGES)}")
    return lang


def build_episode_id(content_id: Optional[str], episode: Optional[str], episode_id: Optional[str]) -> str:
    """
    Examples:
        (None, None, 'naruto-2x5') -> 'naruto-2x5'
        ('naruto', '2x5', None) -> 'naruto-2x5'
        ('naruto', '7', None) -> 'naruto-1x7'
    """
    if episode_id:
        episode_id = episode_id.strip()
        if not EPISODE_ID_PATTERN.match(episode_id):
            raise HTTPException(status_code=400, detail="Invalid episode_id, expected {id}-{season}x{episode}")
        return episode_id
    if not content_id or not episode:
        raise HTTPException(status_code=400, detail="Provide episode_id, or both id and episode")
    content_id = validate_id(content_id)
    episode = episode.strip().lower()
    if not EPISODE_PATTERN.match(episode):
        raise HTTPException(status_code=400, detail="Invalid episode, expected N or SxN")
    return f"{content_id}-{episode}" if "x" in episode else f"{content_id}-1x{episode}"


# Root endpoint
@app.get("/", tags=["Root"])
async def root():
    return {
        "message": "Anime Catalog API",
        "version": "1.0.0",
        "source": config.BASE_URL,
        "endpoints": {
            "home": "/api/home",
            "info": "/api/info?id={id}",
            "episodes": "/api/episodes?id={id}",
            "stream": "/api/stream?id={id}&episode={N|SxN}&lang={lang}",
            "movies": "/api/movies?page={page}&size={size}",
            "search": "/api/search?q={query}&page={page}&size={size}",
            "genre": "/api/genre/{genre}?page={page}&size={size}",
            "series": "/api/series?page={page}&size={size}",
            "cartoon": "/api/cartoon?type={series|movies}&page={page}",
            "ongoing": "/api/ongoing?page={page}",
            "letter": "/api/letter/{letter}?page={page}",
            "random": "/api/random",
            "top_ten": "/api/top-ten",
            "schedule": "/api/schedule",
            "catalogs": ["/api/genres", "/api/languages", "/api/networks", "/api/letters"],
            "health": "/api/health",
        },
        "documentation": "/docs",
    }


@app.get(
    "/api/home",
    response_model=ApiResponse,
    responses={503: ERROR_RESPONSES[503], 500: ERROR_RESPONSES[500]},
    summary="Home page aggregate",
    description="Spotlight, trending, charts, fresh drops, upcoming episodes and filters from the animesalt.cc home page.",
)
async def get_home(controller: Controller = Depends(get_controller)):
    return respond(await controller.get_home())


@app.get(
    "/api/info",
    response_model=ApiResponse,
    responses=ERROR_RESPONSES,
    summary="Item detail",
    description="Detail for a series, movie or cartoon. Example: `?id=naruto-shippuden`",
)
async def get_info(
    id: str = Query(..., description="Content id (slug), e.g. 'naruto-shippuden'"),
    controller: Controller = Depends(get_controller),
):
    return respond(await controller.get_info(validate_id(id)))


@app.get(
    "/api/episodes",
    response_model=ApiResponse,
    responses=ERROR_RESPONSES,
    summary="Episode list",
    description="Episodes sorted by season and number, with sub-only flags. Example: `?id=naruto-shippuden`",
)
async def get_episodes(
    id: str = Query(..., description="Content id (slug)"),
    controller: Controller = Depends(get_controller),
):
    return respond(await controller.get_episodes(validate_id(id)))


@app.get(
    "/api/stream",
    response_model=ApiResponse,
    responses=ERROR_RESPONSES,
    summary="Stream sources",
    description="Stream sources, download links and language resolution for one episode. Example: `?id=naruto-shippuden&episode=2x5&lang=hindi`",
)
async def get_stream(
    id: Optional[str] = Query(None, description="Content id (slug)"),
    episode: Optional[str] = Query(None, description="Episode number, or SxN"),
    episode_id: Optional[str] = Query(None, description="Full episode id, e.g. 'naruto-shippuden-2x5'"),
    lang: str = Query("hindi", description="Preferred audio language"),
    controller: Controller = Depends(get_controller),
):
    full_id = build_episode_id(id, episode, episode_id)
    return respond(await controller.get_stream(full_id, validate_language(lang)))


@app.get(
    "/api/movies",
    response_model=ApiResponse,
    responses=ERROR_RESPONSES,
    summary="Movie listing",
    description="One page of the movie listing. Example: `?page=2&size=20`",
)
async def get_movies(
    page: int = Query(1, ge=1, description="Page number"),
    size: int = Query(config.DEFAULT_PAGE_SIZE, ge=1, le=config.MAX_PAGE_SIZE, description="Items per page"),
    controller: Controller = Depends(get_controller),
):
    return respond(await controller.get_movies(page, size))


@app.get(
    "/api/search",
    response_model=ApiResponse,
    responses=ERROR_RESPONSES,
    summary="Search",
    description="Search series and movies by title. Example: `?q=naruto`",
)
async def search(
    q: str = Query(..., min_length=1, max_length=100, description="Search query"),
    page: int = Query(1, ge=1, description="Page number"),
    size: int = Query(config.DEFAULT_PAGE_SIZE, ge=1, le=config.MAX_PAGE_SIZE, description="Items per page"),
    controller: Controller = Depends(get_controller),
):
    query = re.sub(r'[^\w\s:\'-]', '', q).strip()
    if not query:
        raise HTTPException(status_code=400, detail="Search term cannot be empty or invalid")
    return respond(await controller.search(query, page, size))


@app.get(
    "/api/genre/{genre}",
    response_model=ApiResponse,
    responses=ERROR_RESPONSES,
    summary="Items by genre",
    description="One page of a genre listing. Example: `/api/genre/action?page=1`",
)
async def get_genre(
    genre: str = Path(..., description="Genre slug, e.g. 'martial-arts'"),
    page: int = Query(1, ge=1, description="Page number"),
    size: int = Query(config.DEFAULT_PAGE_SIZE, ge=1, le=config.MAX_PAGE_SIZE, description="Items per page"),
    controller: Controller = Depends(get_controller),
):
    genre = genre.strip().lower()
    if genre not in config.VALID_GENRES:
        raise HTTPException(status_code=400, detail=f"Invalid genre. Supported genres: {', '.join(config.VALID_GENRES)}")
    return respond(await controller.get_genre(genre, page, size))


@app.get(
    "/api/series",
    response_model=ApiResponse,
    responses=ERROR_RESPONSES,
    summary="Series listing",
    description="One page of the series listing. Example: `?page=2&size=20`",
)
async def get_series(
    page: int = Query(1, ge=1, description="Page number"),
    size: int = Query(config.DEFAULT_PAGE_SIZE, ge=1, le=config.MAX_PAGE_SIZE, description="Items per page"),
    controller: Controller = Depends(get_controller),
):
    return respond(await controller.get_series(page, size))


@app.get(
    "/api/cartoon",
    response_model=ApiResponse,
    responses=ERROR_RESPONSES,
    summary="Cartoon listing",
    description="One page of cartoon series or cartoon movies. Example: `?type=movies&page=1`",
)
async def get_cartoons(
    cartoon_type: str = Query("series", alias="type", description=f"One of: {', '.join(config.CARTOON_TYPES)}"),
    page: int = Query(1, ge=1, description="Page number"),
    size: int = Query(config.DEFAULT_PAGE_SIZE, ge=1, le=config.MAX_PAGE_SIZE, description="Items per page"),
    controller: Controller = Depends(get_controller),
):
    return respond(await controller.get_cartoons(cartoon_type, page, size))


@app.get(
    "/api/ongoing",
    response_model=ApiResponse,
    responses={503: ERROR_RESPONSES[503], 500: ERROR_RESPONSES[500]},
    summary="Series currently airing",
    description="The on-air section of the home page, paginated.",
)
async def get_ongoing(
    page: int = Query(1, ge=1, description="Page number"),
    size: int = Query(config.DEFAULT_PAGE_SIZE, ge=1, le=config.MAX_PAGE_SIZE, description="Items per page"),
    controller: Controller = Depends(get_controller),
):
    return respond(await controller.get_ongoing(page, size))


@app.get(
    "/api/letter/{letter}",
    response_model=ApiResponse,
    responses=ERROR_RESPONSES,
    summary="Items by first letter",
    description="Titles starting with a letter or digit; `#` (sent as `%23`) for anything else. Example: `/api/letter/n`",
)
async def get_letter(
    letter: str = Path(..., description="A-Z, 0-9 or '#'"),
    page: int = Query(1, ge=1, description="Page number"),
    size: int = Query(config.DEFAULT_PAGE_SIZE, ge=1, le=config.MAX_PAGE_SIZE, description="Items per page"),
    controller: Controller = Depends(get_controller),
):
    return respond(await controller.get_letter(letter, page, size))


@app.get(
    "/api/random",
    response_model=ApiResponse,
    responses={404: ERROR_RESPONSES[404], 503: ERROR_RESPONSES[503]},
    summary="Random trending item",
)
async def get_random(controller: Controller = Depends(get_controller)):
    return respond(await controller.get_random())


@app.get(
    "/api/top-ten",
    response_model=ApiResponse,
    responses={503: ERROR_RESPONSES[503], 500: ERROR_RESPONSES[500]},
    summary="Top ten series and movies",
    description="Most-watched charts from the home page, falling back to trending items.",
)
async def get_top_ten(controller: Controller = Depends(get_controller)):
    return respond(await controller.get_top_ten())


@app.get(
    "/api/schedule",
    response_model=ApiResponse,
    responses={503: ERROR_RESPONSES[503], 500: ERROR_RESPONSES[500]},
    summary="Upcoming episodes",
)
async def get_schedule(controller: Controller = Depends(get_controller)):
    return respond(await controller.get_schedule())


@app.get("/api/genres", response_model=ApiResponse, summary="Genres listed on the site")
async def get_genres(controller: Controller = Depends(get_controller)):
    return respond(await controller.get_catalog("genres"))


@app.get("/api/languages", response_model=ApiResponse, summary="Audio languages listed on the site")
async def get_languages(controller: Controller = Depends(get_controller)):
    return respond(await controller.get_catalog("languages"))


@app.get("/api/networks", response_model=ApiResponse, summary="Networks listed on the site")
async def get_networks(controller: Controller = Depends(get_controller)):
    return respond(await controller.get_catalog("networks"))


@app.get("/api/letters", response_model=ApiResponse, summary="Letters offered for browsing")
async def get_letters(controller: Controller = Depends(get_controller)):
    return respond(await controller.get_catalog("letters"))


@app.get("/api/health", response_model=HealthResponse, summary="Service health and cache statistics")
async def health(controller: Controller = Depends(get_controller)):
    return HealthResponse(
        status="ok",
        timestamp=datetime.now(timezone.utc).isoformat(),
        cache=controller.cache_stats(),
    )


@app.delete("/api/cache", summary="Drop every cached extraction")
async def clear_cache(controller: Controller = Depends(get_controller)):
    controller.clear_cache()
    return {"success": True, "cache": controller.cache_stats()}
