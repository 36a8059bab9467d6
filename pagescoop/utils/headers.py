"""Browser-like request headers for page and image downloads."""

import random


class UserAgentRotator:
    """Pool of desktop browser user agents.

    Attributes:
        USER_AGENTS: Candidate user agent strings

    """

    USER_AGENTS = [
        'Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36',
        'Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36',
        'Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36',
        'Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:125.0) Gecko/20100101 Firefox/125.0',
        'Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/605.1.15 (KHTML, like Gecko) Version/17.4 Safari/605.1.15',
    ]

    @classmethod
    def get_random(cls) -> str:
        """Get a random user agent."""
        return random.choice(cls.USER_AGENTS)


class HeaderGenerator:
    """Builds request headers for the two kinds of downloads pagescoop makes."""

    ACCEPT = {
        'document': 'text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8',
        'image': 'image/avif,image/webp,image/apng,image/svg+xml,image/*,*/*;q=0.8',
    }

    @classmethod
    def generate_headers(
        cls,
        user_agent: str | None = None,
        referer: str | None = None,
        purpose: str = 'document',
    ) -> dict[str, str]:
        """Generate browser headers.

        Args:
            user_agent: User agent to send; a random one when None
            referer: Page URL to send as Referer, if any
            purpose: 'document' for page loads, 'image' for image fetches

        Returns:
            Header mapping for requests

        """
        if user_agent is None:
            user_agent = UserAgentRotator.get_random()

        headers = {
            'User-Agent': user_agent,
            'Accept': cls.ACCEPT.get(purpose, cls.ACCEPT['document']),
            'Accept-Language': 'en-US,en;q=0.9',
            'Accept-Encoding': 'gzip, deflate',
            'Connection': 'keep-alive',
        }

        if 'Chrome' in user_agent:
            headers['Sec-Fetch-Dest'] = 'image' if purpose == 'image' else 'document'
            headers['Sec-Fetch-Mode'] = 'no-cors' if purpose == 'image' else 'navigate'

        if referer:
            headers['Referer'] = referer

        return headers
