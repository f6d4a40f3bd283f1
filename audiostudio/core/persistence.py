"""
Project save/load boundary.

The JSON payload keeps each clip's encoded audio but never decoded samples;
loading re-ingests every clip so it is immediately playable and exportable.
"""
from __future__ import annotations
import json
import logging
import os
from pathlib import Path
from typing import Any

from .clip import Clip
from .errors import DecodeError
from .ingest import reingest
from .mixer import MixerSettings
from .project import Project
from .track import Track

logger = logging.getLogger("PyAudioStudio")


def clip_to_dict(clip: Clip) -> dict[str, Any]:
    return {
        "id": clip.id,
        "trackId": clip.track_id,
        "name": clip.name,
        "start": clip.start,
        "duration": clip.duration,
        "audioBase64": clip.audio_base64,
        "mimeType": clip.mime_type,
        "waveform": list(clip.waveform),
    }


def clip_from_dict(data: dict[str, Any]) -> Clip:
    return Clip(
        id=str(data["id"]),
        track_id=int(data["trackId"]),
        name=str(data.get("name", "")),
        start=float(data.get("start", 0.0)),
        duration=float(data["duration"]),
        audio_base64=str(data.get("audioBase64", data.get("audioB64", ""))),
        mime_type=str(data.get("mimeType", "audio/pcm")),
        waveform=tuple(float(v) for v in data.get("waveform", ())),
    )


def project_to_dict(project: Project) -> dict[str, Any]:
    return {
        "projectName": project.name,
        "tracks": [
            {
                "id": track.id,
                "name": track.name,
                "color": track.color,
                "clips": [clip_to_dict(c) for c in track.clips],
                "mixerSettings": track.mixer.to_dict(),
            }
            for track in project.tracks
        ],
    }


def project_from_dict(data: dict[str, Any], ingest: bool = True) -> Project:
    """
    Build a Project from the persistence payload.

    With `ingest`, each clip is decoded again; a clip whose payload no longer
    decodes is dropped and logged.
    """
    tracks = []
    for raw in data.get("tracks", []):
        clips = []
        for raw_clip in raw.get("clips", []):
            clip = clip_from_dict(raw_clip)
            if ingest:
                try:
                    clip = reingest(clip)
                except DecodeError as e:
                    logger.warning("Dropping clip %s on load: %s", clip.id, e)
                    continue
            clips.append(clip)
        tracks.append(Track(
            id=int(raw["id"]),
            name=str(raw.get("name", "Track")),
            color=str(raw.get("color", "#3b82f6")),
            clips=tuple(clips),
            mixer=MixerSettings.from_dict(raw.get("mixerSettings", {})),
        ))
    return Project(name=str(data.get("projectName", "Untitled_Project")), tracks=tuple(tracks))


def project_to_json(project: Project, indent: int | None = 2) -> str:
    return json.dumps(project_to_dict(project), indent=indent)


def project_from_json(text: str, ingest: bool = True) -> Project:
    return project_from_dict(json.loads(text), ingest=ingest)


def save_project(project: Project, path: str | os.PathLike) -> Path:
    path = Path(path)
    path.write_text(project_to_json(project), encoding="utf-8")
    logger.info("Saved project %r to %s", project.name, path)
    return path


def load_project(path: str | os.PathLike, ingest: bool = True) -> Project:
    project = project_from_json(Path(path).read_text(encoding="utf-8"), ingest=ingest)
    logger.info("Loaded project %r (%d tracks)", project.name, len(project.tracks))
    return project
