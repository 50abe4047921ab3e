import httpx
import logging
from typing import List, Dict, Any, Optional
from datetime import datetime
from pydantic_settings import BaseSettings
from tenacity import (
    retry,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential_jitter,
    before_sleep_log,
)

from core.errors import ConfigurationError, ExternalFetchFailure
from collection.clients.provider import VideoMetadata, SearchResult, VideoMetadataProvider

logger = logging.getLogger(__name__)

# videos.list accepts at most 50 ids per call
MAX_IDS_PER_REQUEST = 50

class YouTubeSettings(BaseSettings):
    youtube_api_key: str = ""

    class Config:
        env_file = ".env"
        extra = "ignore"

def _is_retryable(exc: BaseException) -> bool:
    """Retry on 429 (rate limit), 5xx and transport errors only"""
    if isinstance(exc, httpx.HTTPStatusError):
        status = exc.response.status_code
        return status == 429 or status >= 500
    return isinstance(exc, httpx.RequestError)

def _parse_timestamp(value: str) -> datetime:
    return datetime.fromisoformat(value.replace("Z", "+00:00"))

class YouTubeClient(VideoMetadataProvider):
    def __init__(self, api_key: Optional[str] = None, client: Optional[httpx.Client] = None):
        self.api_key = api_key if api_key is not None else YouTubeSettings().youtube_api_key
        self.check()

        self.base_url = "https://www.googleapis.com/youtube/v3"
        self.client = client or httpx.Client(
            timeout=10.0,
            limits=httpx.Limits(max_connections=5, max_keepalive_connections=2)
        )

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def check(self) -> None:
        if not self.api_key:
            raise ConfigurationError("YOUTUBE_API_KEY is not configured")

    def close(self) -> None:
        self.client.close()

    def get_video(self, video_id: str) -> VideoMetadata:
        """Fetch current statistics and snippet for a single video"""
        videos = self.get_videos([video_id])
        if not videos:
            raise ExternalFetchFailure(f"Video {video_id} not found")
        return videos[0]

    def get_videos(self, video_ids: List[str]) -> List[VideoMetadata]:
        """Fetch detailed video information in chunks of 50 ids"""
        videos: List[VideoMetadata] = []
        for start in range(0, len(video_ids), MAX_IDS_PER_REQUEST):
            chunk = video_ids[start:start + MAX_IDS_PER_REQUEST]
            data = self._request("videos", {
                "part": "snippet,statistics",
                "id": ",".join(chunk)
            })
            videos.extend(self._parse_videos(data))
        return videos

    def get_recent_uploads(self, channel_id: str, max_results: int = 3) -> List[str]:
        """Resolve the channel's uploads playlist and list its newest items"""
        channel = self._request("channels", {
            "part": "contentDetails",
            "id": channel_id
        })
        items = channel.get("items", [])
        uploads = (
            items[0].get("contentDetails", {}).get("relatedPlaylists", {}).get("uploads")
            if items else None
        )
        if not uploads:
            raise ExternalFetchFailure(f"Channel {channel_id} has no uploads playlist")

        playlist = self._request("playlistItems", {
            "part": "contentDetails",
            "playlistId": uploads,
            "maxResults": max(max_results, 1)
        })
        video_ids = [
            item.get("contentDetails", {}).get("videoId")
            for item in playlist.get("items", [])
        ]
        return [video_id for video_id in video_ids if video_id][:max_results]

    def get_chart_video_ids(self, region_code: str, max_results: int = 50) -> List[str]:
        """Fetch mostPopular chart ids for a region"""
        data = self._request("videos", {
            "part": "id",
            "chart": "mostPopular",
            "regionCode": region_code,
            "maxResults": min(max_results, MAX_IDS_PER_REQUEST)
        })
        return [item["id"] for item in data.get("items", []) if item.get("id")]

    def search_videos(self, keyword: str, max_results: int = 50) -> SearchResult:
        """Search existing videos for a keyword, ordered by relevance"""
        data = self._request("search", {
            "part": "snippet",
            "q": keyword,
            "type": "video",
            "order": "relevance",
            "maxResults": min(max_results, MAX_IDS_PER_REQUEST)
        })
        video_ids = [
            item.get("id", {}).get("videoId")
            for item in data.get("items", [])
        ]
        video_ids = [video_id for video_id in video_ids if video_id]
        return SearchResult(
            keyword=keyword,
            total_results=int(data.get("pageInfo", {}).get("totalResults", 0) or 0),
            video_ids=video_ids
        )

    def _request(self, endpoint: str, params: Dict[str, Any]) -> Dict[str, Any]:
        """Make a request, translating exhausted retries into a per-item failure"""
        try:
            return self._make_request(endpoint, params)
        except (httpx.HTTPStatusError, httpx.RequestError) as e:
            raise ExternalFetchFailure(f"YouTube {endpoint} request failed: {e}") from e

    @retry(
        retry=retry_if_exception(_is_retryable),
        stop=stop_after_attempt(5),
        wait=wait_exponential_jitter(initial=1, max=30, jitter=0.2),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True
    )
    def _make_request(self, endpoint: str, params: Dict[str, Any]) -> Dict[str, Any]:
        """Make HTTP request with retry logic for 429/5xx errors"""
        params = {
            **params,
            "key": self.api_key
        }

        try:
            response = self.client.get(f"{self.base_url}/{endpoint}", params=params)

            if response.status_code == 429 or response.status_code >= 500:
                logger.warning(f"HTTP {response.status_code}: retrying request")

            response.raise_for_status()
            return response.json()

        except httpx.HTTPStatusError as e:
            logger.error(f"HTTP error {e.response.status_code}: {e}")
            raise
        except httpx.RequestError as e:
            logger.error(f"Request error: {e}")
            raise

    def _parse_videos(self, videos_data: Dict[str, Any]) -> List[VideoMetadata]:
        """Parse video data into VideoMetadata models"""
        videos = []

        for item in videos_data.get("items", []):
            try:
                snippet = item["snippet"]
                statistics = item.get("statistics", {})

                video = VideoMetadata(
                    video_id=item["id"],
                    channel_id=snippet.get("channelId", ""),
                    title=snippet.get("title", ""),
                    tags=snippet.get("tags", []),
                    published_at=_parse_timestamp(snippet["publishedAt"]),
                    view_count=int(statistics.get("viewCount", 0)),
                    like_count=int(statistics.get("likeCount", 0)),
                    comment_count=int(statistics.get("commentCount", 0))
                )
                videos.append(video)

            except (KeyError, ValueError, TypeError) as e:
                logger.warning(f"Failed to parse video {item.get('id', 'unknown')}: {e}")
                continue

        return videos
