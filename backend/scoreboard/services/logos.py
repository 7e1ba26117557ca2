import os
from typing import List

from werkzeug.utils import secure_filename

from scoreboard.services.match.errors import UploadFailure

ALLOWED_EXTENSIONS = {'png', 'jpg', 'jpeg', 'gif', 'svg', 'webp'}


class LogoStore:
    """Filesystem blob store for team, league and channel logos.

    Refs are bare file names inside ``folder``; ``public_url`` turns one into
    the URL that gets stored verbatim on a team or match.
    """

    def __init__(self, folder: str, url_prefix: str = '/logos'):
        self.folder = folder
        self.url_prefix = url_prefix.rstrip('/')

    @classmethod
    def from_config(cls, config) -> 'LogoStore':
        return cls(config['LOGO_UPLOAD_FOLDER'], config.get('LOGO_URL_PREFIX', '/logos'))

    def upload(self, path: str, data: bytes) -> str:
        ref = secure_filename(path)
        ext = ref.rsplit('.', 1)[-1].lower() if '.' in ref else ''
        if ext not in ALLOWED_EXTENSIONS:
            raise UploadFailure(f"Unsupported logo type: {ext or 'none'}")
        if not data:
            raise UploadFailure('Logo file is empty')
        target = os.path.join(self.folder, ref)
        if os.path.exists(target):
            raise UploadFailure(f"Logo {ref} already exists")
        try:
            os.makedirs(self.folder, exist_ok=True)
            with open(target, 'wb') as fh:
                fh.write(data)
        except OSError as exc:
            raise UploadFailure(f"Could not store logo: {exc}") from exc
        return ref

    def list(self) -> List[str]:
        if not os.path.isdir(self.folder):
            return []
        return sorted(
            name for name in os.listdir(self.folder)
            if name.rsplit('.', 1)[-1].lower() in ALLOWED_EXTENSIONS
        )

    def public_url(self, ref: str) -> str:
        return f"{self.url_prefix}/{ref}"
