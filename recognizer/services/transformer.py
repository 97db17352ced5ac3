"""
Преобразование выборки из БД в запрос к Laia.

Чистая функция без ошибок: каждая запись превращается в пару (id, URL).
"""

from recognizer.schemas import LineImg, Picture


def resolve_url(url: str, fileserver_url: str) -> str:
    """
    Возвращает URL изображения, доступный для Laia.

    Абсолютный URL (схема http или https, в любом регистре) не меняется,
    относительный путь дописывается к адресу файлового сервера
    простой конкатенацией.
    """
    if url.lower().startswith(("http://", "https://")):
        return url
    return fileserver_url + url


def build_line_images(pictures: list[Picture], fileserver_url: str) -> list[LineImg]:
    """
    Формирует тело запроса к Laia.

    Args:
        pictures: записи из БД
        fileserver_url: базовый URL файлового сервера

    Returns:
        list[LineImg]: по одному элементу на запись, порядок сохранён
    """
    return [
        LineImg(id=picture.id, url=resolve_url(picture.url, fileserver_url))
        for picture in pictures
    ]
