from __future__ import annotations

import importlib
import inspect
import logging
import pkgutil
from collections.abc import Iterable, Mapping
from pathlib import Path
from types import MappingProxyType

from PySubparse.Helpers import GetFormatFromFilename, NormaliseExtension
from PySubparse.Helpers.Localization import _
from PySubparse.SettingsType import SettingType
from PySubparse.SubtitleError import UnsupportedFormatError
from PySubparse.SubtitleFileHandler import SubtitleFileHandler

class SubtitleFormatRegistry:
    """
    Maps file extensions to subtitle file handlers.

    A registry is immutable once constructed. Use `discover` to build one from the handlers
    in the Formats package, or pass handler classes directly to build an isolated registry.
    `default_registry` returns a shared instance built on first use.

    Provides methods to create handler instances based on file extensions, filenames or content.
    """
    def __init__(self, handlers : Iterable[type[SubtitleFileHandler]] = ()):
        handler_map : dict[str, type[SubtitleFileHandler]] = {}
        priorities : dict[str, int] = {}

        for handler_class in handlers:
            for extension, priority in handler_class.SUPPORTED_EXTENSIONS.items():
                extension = NormaliseExtension(extension)
                if extension not in handler_map or priority >= priorities[extension]:
                    handler_map[extension] = handler_class
                    priorities[extension] = priority

        self._handlers : Mapping[str, type[SubtitleFileHandler]] = MappingProxyType(handler_map)
        self._priorities : Mapping[str, int] = MappingProxyType(priorities)

    @property
    def handlers(self) -> Mapping[str, type[SubtitleFileHandler]]:
        return self._handlers

    @classmethod
    def discover(cls) -> SubtitleFormatRegistry:
        """
        Build a registry from all subtitle file handlers in the Formats package.
        """
        handlers : list[type[SubtitleFileHandler]] = []
        package_path = Path(__file__).parent / "Formats"
        for _finder, module_name, _ispkg in pkgutil.iter_modules([str(package_path)]):
            module = importlib.import_module(f"PySubparse.Formats.{module_name}")
            for _name, obj in inspect.getmembers(module, inspect.isclass):
                if issubclass(obj, SubtitleFileHandler) and not inspect.isabstract(obj) and obj not in handlers:
                    handlers.append(obj)

        logging.debug(f"Discovered subtitle handlers: {', '.join(handler.__name__ for handler in handlers)}")
        return cls(handlers)

    def get_handler_by_extension(self, extension : str) -> type[SubtitleFileHandler]:
        """
        Get the subtitle file handler class for the given extension.
        """
        ext = NormaliseExtension(extension)
        if ext not in self._handlers:
            raise UnsupportedFormatError(_("Unknown subtitle format: {extension}. Available formats: {available}").format(extension=extension, available=self.list_available_formats()))
        return self._handlers[ext]

    def create_handler(self, extension : str|None = None, filename : str|None = None, settings : Mapping[str, SettingType]|None = None) -> SubtitleFileHandler:
        """
        Instantiate a subtitle file handler for the given extension or filename.
        """
        if extension is None and filename is not None:
            extension = self.get_format_from_filename(filename)

        if not extension:
            raise UnsupportedFormatError(
                _("Format cannot be deduced from filename or extension '{name}'. Available formats: {formats}").format(
                    name=filename or extension or "None", formats=self.list_available_formats()))

        handler_cls = self.get_handler_by_extension(extension)
        return handler_cls(settings)

    def enumerate_formats(self) -> list[str]:
        """
        List all supported subtitle formats (file extensions).
        """
        return sorted(self._handlers.keys())

    def list_available_formats(self) -> str:
        """
        Get a comma-separated string of all supported subtitle formats.
        """
        formats = self.enumerate_formats()
        return _("None") if not formats else ", ".join(formats)

    def get_format_from_filename(self, filename : str) -> str|None:
        """
        Deduce subtitle format from file extension
        """
        return GetFormatFromFilename(filename)

    def detect_format(self, content : bytes) -> str:
        """
        Identify the format of the content, returning the extension of the matching handler.

        Handlers are asked in descending priority order.

        Raises:
            UnsupportedFormatError: If no handler recognises the content
        """
        candidates = sorted(self._handlers.items(), key=lambda item: (-self._priorities[item[0]], item[0]))
        for extension, handler_class in candidates:
            if handler_class().sniff(content):
                logging.info(_("Detected subtitle format '{format}'").format(format=extension))
                return extension

        raise UnsupportedFormatError(_("Could not detect subtitle format. Available formats: {formats}").format(formats=self.list_available_formats()))

    def __contains__(self, extension : str) -> bool:
        return NormaliseExtension(extension) in self._handlers

    def __repr__(self) -> str:
        return f"SubtitleFormatRegistry({self.list_available_formats()})"

_default_registry : SubtitleFormatRegistry|None = None

def default_registry() -> SubtitleFormatRegistry:
    """
    The registry of all handlers in the Formats package, discovered on first use
    """
    global _default_registry
    if _default_registry is None:
        _default_registry = SubtitleFormatRegistry.discover()
    return _default_registry
