# Site markup changes without notice; every selector here can be overridden from env.
MEDIA_SEL = "video"
# Interstitial dialog: exact styled-components class first, then any Dialog__Container.
POPUP_SEL = ".Dialog__Container-sc-1l9g2uc-0.iOfyCd"
POPUP_FALLBACK_SEL = "[class*='Dialog__Container']"
# Virtualized product list inside the live page side panel.
LIST_SEL = ".ProductList__StyledList-zzolnk-4.eUSJvS"
LIST_FALLBACK_SEL = "[class*='ProductList']"
