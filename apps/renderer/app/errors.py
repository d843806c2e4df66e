# apps/renderer/app/errors.py
#
# Failure taxonomy for the pin renderer. main.py maps each class to an
# HTTP status; nothing here is retried.
#
#   AuthorizationError → 401  (X-KEY missing / mismatched, or no key configured)
#   MethodError        → 405  (anything but POST on /render)
#   RenderError        → 500  (image fetch, font load, SVG build, rasterize)


class RendererError(Exception):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class AuthorizationError(RendererError):
    status_code = 401


class MethodError(RendererError):
    status_code = 405


class RenderError(RendererError):
    status_code = 500


class ImageLoadError(RenderError):
    pass


class FontLoadError(RenderError):
    pass
