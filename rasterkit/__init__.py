from .models.rgb import Rgb, BLACK, WHITE, RED, GREEN, BLUE
from .models.raster_image import RasterImage
from .models.pixmap_format import PixmapFormat
from .models.codec_result import CodecErrorKind, CodecResult, PixmapError
from .repositories.pixmap_repository import PixmapRepository
from .services.image_service import ImageService

__version__ = "1.0.0"
