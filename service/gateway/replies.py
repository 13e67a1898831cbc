"""
User-facing reply texts.

Welcome messages are configurable (see Settings); everything else is fixed.
"""

QUERY_ERROR = "Ocurrió un error al procesar tu consulta."
EMPTY_ANSWER = "No encontré una respuesta para tu consulta. Intenta reformularla."

VOICE_NOT_SUPPORTED = "Lo siento, aún no soporto entrada de audio."
PHOTO_NOT_SUPPORTED = "Lo siento, la funcionalidad para procesar imágenes aún no está implementada."
UNSUPPORTED_MESSAGE = "Lo siento, este tipo de mensaje aún no está soportado."

UNSUPPORTED_FORMAT = "❌ Formato no soportado. Por ahora solo puedo procesar documentos PDF."

LINK_USAGE = (
    "Por favor, proporciona una URL válida después de 'pdf:'. "
    "Por ejemplo: pdf: https://drive.google.com/file/d/abc123/view"
)


def processing_started(filename: str) -> str:
    return f"📝 Procesando el documento \"{filename}\"..."


def downloading_link(url: str) -> str:
    return f"📝 Descargando PDF desde: {url}..."


def ingestion_succeeded(summary: str) -> str:
    return (
        f"✅ ¡PDF procesado con éxito!\n\n{summary}\n\n"
        "Ahora puedes hacerme preguntas sobre el contenido de este documento."
    )


def ingestion_failed(reason: str) -> str:
    return f"❌ Error al procesar el PDF: {reason}"
