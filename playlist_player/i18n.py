# i18n.py
import locale

MESSAGES = {
    "en": {
        "auth_attempt": "Attempting to authenticate with Google...",
        "auth_success": "Authentication successful.",
        "auth_error": "Authentication failed: {error}",
        "config_error": "Invalid configuration: {error}",
        "fetching_playlist": "Fetching playlist '{playlist_id}'...",
        "playlist_not_loaded": "Could not load playlist '{playlist_id}'. Check the id and try again.",
        "playlist_by": "by {name} ({url})",
        "page_info": "Page {page} - {count} videos",
        "last_page": "This is the last page.",
        "first_page": "This is the first page.",
        "empty_page": "No videos on this page.",
        "column_index": "#",
        "column_title": "Title",
        "column_id": "Video ID",
        "column_local": "Local",
        "status_pending": "Download pending...",
        "status_downloading": "Downloading video...",
        "status_failed": "Download failed.",
        "download_done": "Downloaded: {path}",
        "already_downloading": "'{video_id}' is already downloading.",
        "bulk_report": "Batch complete: {ok} downloaded, {failed} failed, {skipped} skipped.",
        "bulk_failed_item": "Failed: {video_id}",
        "invalid_index": "Invalid video number: {value}",
        "unknown_command": "Unknown command: {command}",
        "browse_prompt": "[n]ext [p]rev [r]efresh [w N] watch [d N] download [a]ll [q]uit",
        "opening_player": "Opening '{path}'...",
        "timeout": "Gave up waiting after {seconds}s.",
        "goodbye": "Bye!",
        "help_playlist_id": "ID of the YouTube playlist to browse.",
        "help_video_ids": "IDs of the videos to download.",
        "help_media_dir": "Directory where videos are stored.",
        "help_config": "YAML configuration file.",
        "help_verbose": "Enable debug logs.",
        "help_lang": "Set the language for output messages (e.g., 'en' or 'fr').",
        "help_report_failures": "Report a batch as failed when one of its videos fails.",
        "help_timeout": "Seconds to wait for the downloads before giving up.",
    },
    "fr": {
        "auth_attempt": "Tentative d'authentification auprès de Google...",
        "auth_success": "Authentification réussie.",
        "auth_error": "Échec de l'authentification : {error}",
        "config_error": "Configuration invalide : {error}",
        "fetching_playlist": "Récupération de la playlist '{playlist_id}'...",
        "playlist_not_loaded": "Impossible de charger la playlist '{playlist_id}'. Vérifiez l'identifiant.",
        "playlist_by": "par {name} ({url})",
        "page_info": "Page {page} - {count} vidéos",
        "last_page": "C'est la dernière page.",
        "first_page": "C'est la première page.",
        "empty_page": "Aucune vidéo sur cette page.",
        "column_index": "#",
        "column_title": "Titre",
        "column_id": "ID vidéo",
        "column_local": "Local",
        "status_pending": "Téléchargement en attente...",
        "status_downloading": "Téléchargement de la vidéo...",
        "status_failed": "Échec du téléchargement.",
        "download_done": "Téléchargé : {path}",
        "already_downloading": "'{video_id}' est déjà en cours de téléchargement.",
        "bulk_report": "Lot terminé : {ok} téléchargées, {failed} en échec, {skipped} ignorées.",
        "bulk_failed_item": "Échec : {video_id}",
        "invalid_index": "Numéro de vidéo invalide : {value}",
        "unknown_command": "Commande inconnue : {command}",
        "browse_prompt": "[n] suivante [p] précédente [r] rafraîchir [w N] regarder [d N] télécharger [a] tout [q] quitter",
        "opening_player": "Ouverture de '{path}'...",
        "timeout": "Abandon après {seconds}s d'attente.",
        "goodbye": "Au revoir !",
        "help_playlist_id": "ID de la playlist YouTube à parcourir.",
        "help_video_ids": "IDs des vidéos à télécharger.",
        "help_media_dir": "Répertoire où sont stockées les vidéos.",
        "help_config": "Fichier de configuration YAML.",
        "help_verbose": "Active les logs de débogage.",
        "help_lang": "Langue des messages (ex. 'en' ou 'fr').",
        "help_report_failures": "Signale un lot en échec si l'une de ses vidéos échoue.",
        "help_timeout": "Secondes d'attente des téléchargements avant abandon.",
    },
}

_current_lang = "en"


def get_default_lang():
    try:
        lang_code, _ = locale.getlocale()
        return "fr" if lang_code and lang_code.startswith("fr") else "en"
    except (ValueError, TypeError):
        return "en"


def set_lang(lang: str):
    global _current_lang
    _current_lang = lang if lang in MESSAGES else "en"


def get_message(key, **kwargs):
    lang = _current_lang
    if lang not in MESSAGES or key not in MESSAGES[lang]:
        # Fallback to English if key not found in current language
        lang = "en"

    message_template = MESSAGES[lang].get(key, f"Translation missing for key: {key}")

    try:
        return message_template.format(**kwargs)
    except KeyError as e:
        return f"Formatting error for key '{key}': missing placeholder {e}"


# Initialize with default system language
set_lang(get_default_lang())
