"""
Saves edited and generated images to disk with a metadata file
"""

import os
import logging
from datetime import datetime
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)

DEFAULT_OUTPUT_DIR = "generated_images"
METADATA_FILENAME = "generation_info.txt"


def safe_filename(text: str, limit: int = 50) -> str:
    """Keep alphanumerics, spaces, dashes and underscores; spaces become underscores."""
    safe = "".join(c for c in text[:limit] if c.isalnum() or c in (' ', '-', '_')).rstrip()
    return safe.replace(' ', '_')


def create_session_folder(base_dir: str, label: str = "", now: Optional[datetime] = None) -> str:
    """Create ``<base_dir>/<timestamp>_<label>`` and return its path."""
    timestamp = (now or datetime.now()).strftime("%Y%m%d_%H%M%S")
    safe_label = safe_filename(label, 30)
    folder_name = f"{timestamp}_{safe_label}" if safe_label else timestamp
    folder = os.path.join(base_dir, folder_name)
    os.makedirs(folder, exist_ok=True)
    return folder


def save_result(folder: str, index: int, flow_name: str, prompt: str, image_bytes: bytes) -> str:
    """Write one result image and return its path."""
    os.makedirs(folder, exist_ok=True)
    filename = f"{index:02d}_{flow_name}_{safe_filename(prompt)}.png"
    filepath = os.path.join(folder, filename)

    with open(filepath, "wb") as f:
        f.write(image_bytes)

    logger.info(f"Saved {flow_name} result to {filepath}")
    return filepath


def save_generation_metadata(folder: str, data: Dict[str, Any], filename: str = METADATA_FILENAME) -> str:
    """Save metadata about the run to a text file."""
    metadata_file = os.path.join(folder, filename)

    with open(metadata_file, 'w', encoding='utf-8') as f:
        f.write("=" * 70 + "\n")
        f.write("IMAGE STUDIO METADATA\n")
        f.write("=" * 70 + "\n\n")
        f.write(f"Timestamp: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}\n\n")

        for key, label in [
            ('flow', 'FLOW'),
            ('prompt', 'PROMPT'),
            ('source_image', 'SOURCE IMAGE'),
            ('model', 'MODEL')
        ]:
            if key in data and data[key]:
                f.write(f"{label}:\n")
                f.write("-" * 70 + "\n")
                f.write(f"{data[key]}\n\n")

        if data.get('saved_images'):
            f.write("SAVED IMAGES:\n")
            f.write("-" * 70 + "\n")
            for i, name in enumerate(data['saved_images'], 1):
                f.write(f"{i}. {name}\n")
            f.write("\n")

        f.write("=" * 70 + "\n")

    return metadata_file


class ResultArchive:
    """Session-scoped archive; all results land in one timestamped folder."""

    def __init__(self, base_dir: str = DEFAULT_OUTPUT_DIR, label: str = "session"):
        self.base_dir = base_dir
        self.label = label
        self.folder: Optional[str] = None
        self.counter = 0

    def save(self, flow_name: str, prompt: str, image_bytes: bytes,
             source_image: str = "", model: str = "") -> str:
        if self.folder is None:
            self.folder = create_session_folder(self.base_dir, self.label)

        self.counter += 1
        filepath = save_result(self.folder, self.counter, flow_name, prompt, image_bytes)
        save_generation_metadata(self.folder, {
            'flow': flow_name,
            'prompt': prompt,
            'source_image': source_image,
            'model': model,
            'saved_images': [os.path.basename(filepath)]
        }, filename=f"{self.counter:02d}_{METADATA_FILENAME}")
        return filepath
