"""Reply texts and captions sent by the command handlers."""

DL_USAGE = "Usage: !dl <image_url>"
DL_CAPTION = "Voilà l'image téléchargée"
DL_FAILED = "Erreur durant le téléchargement."

STICKER_USAGE = "Réponds à un sticker avec la commande !sticker2img"
STICKER_DOWNLOAD_FAILED = "Impossible de télécharger le sticker."
STICKER_CAPTION = "Sticker converti en image"

TAGALL_GROUP_ONLY = "Cette commande fonctionne seulement dans un groupe."
TAGALL_HEADER = "📣 TAG ALL\n"

LISTFILES_PREFIX = "Fichiers: "

VIEW_ONCE_SAVED = "📥 Image vue-unique sauvegardée."

GREETING = "Salut 👋 — bot avancé en place. Utilise !help pour commandes."

HELP_LINES = [
    "Commandes disponibles:",
    "!dl <url> - télécharger image depuis URL",
    "!sticker2img - réponds à un sticker pour le convertir (reply)",
    "!tagall - tague tout le groupe",
    "!listfiles - liste les fichiers sauvegardés",
    "/qr.png - télécharge le dernier QR (via HTTP)",
]

HELP = "\n".join(HELP_LINES)
