"""Figma image-export client."""

import logging
import re
from typing import Dict, List

from .api_client import APIClient
from .errors import ConfigurationError, UpstreamFetchError, ValidationError

FIGMA_API_URL = 'https://api.figma.com'
IMAGE_FORMATS = ('png', 'jpg')
SCALES = (1, 2, 3, 4)

NODE_ID_PATTERN = re.compile(r'^\d+[:-]\d+$')


def parse_node_id(value: str) -> str:
    """Normalize a node id from a URL ("12-34") to API form ("12:34")."""
    value = (value or '').strip()
    if not NODE_ID_PATTERN.match(value):
        raise ValidationError(f"Invalid Figma node id: {value!r}. Expected e.g. 12:34 or 12-34.")
    return value.replace('-', ':')


class FigmaService:
    """Requests rendered image URLs for nodes of a Figma file."""

    def __init__(self, access_token: str, api_base_url: str = None, api_client: APIClient = None):
        self.access_token = access_token
        self.api_base_url = api_base_url or FIGMA_API_URL
        self.api_client = api_client or APIClient(
            self.api_base_url,
            headers={'X-FIGMA-TOKEN': access_token or ''},
            name='Figma',
        )

    def validate_config(self) -> List[str]:
        """Return a list of configuration problems (empty when usable)."""
        errors = []
        if not self.access_token:
            errors.append('FIGMA_ACCESS_TOKEN is not set')
        if not self.api_base_url.startswith(('http://', 'https://')):
            errors.append(f'FIGMA_API_BASE_URL is not a URL: {self.api_base_url}')
        return errors

    def fetch_image_urls(self, file_key: str, node_ids: List[str], image_format: str = 'png',
                         scale: int = 1) -> Dict[str, str]:
        """Ask Figma to render nodes and return their short-lived download URLs.

        Args:
            file_key: Key of the Figma file
            node_ids: Node ids in API form ("12:34")
            image_format: 'png' or 'jpg'
            scale: Integer scale between 1 and 4

        Returns:
            Dictionary mapping node id to image URL (None when Figma could
            not render the node)
        """
        problems = self.validate_config()
        if problems:
            raise ConfigurationError("Figma configuration is incomplete: " + "; ".join(problems))
        if not node_ids:
            raise ValidationError("At least one node ID must be provided.")
        if image_format not in IMAGE_FORMATS:
            raise ValidationError('--format must be either "png" or "jpg".')
        if scale not in SCALES:
            raise ValidationError("--scale must be an integer between 1 and 4.")

        logging.info(f"Requesting {len(node_ids)} node image(s) from Figma file {file_key}")
        data = self.api_client.get_json(f"v1/images/{file_key}", {
            'ids': ','.join(node_ids),
            'format': image_format,
            'scale': str(scale),
        })

        if data.get('err'):
            logging.error(f"Figma API error: {data['err']}")
            raise UpstreamFetchError(f"Figma API returned error: {data['err']}")

        return dict(data.get('images') or {})
