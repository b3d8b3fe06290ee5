# Centralized collection names to prevent drift.

COL_USERS = "users"
COL_NOTIFICATION_TOKENS = "notificationTokens"  # users/{uid}/notificationTokens/{token}
COL_NOTIFICATION_SETTINGS = "notificationSettings"  # users/{uid}/notificationSettings/preferences
DOC_NOTIFICATION_PREFERENCES = "preferences"

COL_INVITATIONS = "invitations"
COL_MENULISTS = "menulists"
COL_RECIPE_COLLECTIONS = "recipeCollections"
COL_RECIPES = "recipes"

# Shoplist items: shoplists/{shoplist_id}/items/{item_id} (watched as a collection group)
COL_SHOPLISTS = "shoplists"
COL_SHOPLIST_ITEMS = "items"
