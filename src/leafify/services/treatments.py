"""Static treatment knowledge base keyed by class label."""
from __future__ import annotations

import json
import re
from pathlib import Path
from types import MappingProxyType
from typing import Dict, List, Mapping, Sequence, Tuple

FALLBACK_ADVICE: Tuple[str, ...] = ("No specific advice available",)

_SEPARATORS = re.compile(r"[_\s]+")

DEFAULT_TREATMENTS: Dict[str, Tuple[str, ...]] = {
    "Apple___Apple_scab": (
        "Rake up and destroy fallen leaves to reduce overwintering spores.",
        "Apply a captan or myclobutanil fungicide from green tip until petal fall.",
        "Prune the canopy to improve airflow and speed leaf drying.",
    ),
    "Apple___Black_rot": (
        "Cut out cankers and mummified fruit, then burn or bin them.",
        "Spray captan or a sulfur-based fungicide at 10-14 day intervals.",
        "Keep trees vigorous with balanced fertilisation and watering.",
    ),
    "Apple___Cedar_apple_rust": (
        "Remove nearby juniper galls or eastern red cedars where practical.",
        "Apply myclobutanil or mancozeb from pink bud through early summer.",
        "Plant rust-resistant apple cultivars in future plantings.",
    ),
    "Apple___healthy": (
        "Continue regular watering at the root zone.",
        "Prune annually during dormancy to keep the canopy open.",
        "Inspect leaves weekly for spots or discoloration.",
    ),
    "Blueberry___healthy": (
        "Keep soil acidic (pH 4.5-5.5) with an ericaceous mulch.",
        "Water deeply once or twice a week during dry spells.",
        "Remove old canes in late winter to encourage new growth.",
    ),
    "Cherry_(including_sour)___Powdery_mildew": (
        "Apply sulfur or potassium bicarbonate at the first sign of white growth.",
        "Prune crowded shoots so sunlight reaches the interior of the tree.",
        "Avoid excess nitrogen, which promotes susceptible soft growth.",
    ),
    "Cherry_(including_sour)___healthy": (
        "Water consistently and mulch to retain soil moisture.",
        "Prune after harvest to maintain an open centre.",
        "Monitor for leaf spots after prolonged wet weather.",
    ),
    "Corn_(maize)___Cercospora_leaf_spot Gray_leaf_spot": (
        "Apply a strobilurin or triazole fungicide when lesions reach the upper leaves.",
        "Rotate to a non-host crop for at least one season.",
        "Till or remove infected residue after harvest.",
    ),
    "Corn_(maize)___Common_rust_": (
        "Apply a foliar fungicide if pustules appear before tasselling.",
        "Choose rust-resistant hybrids for the next planting.",
        "Scout the field regularly during cool, humid periods.",
    ),
    "Corn_(maize)___Northern_Leaf_Blight": (
        "Apply a fungicide such as azoxystrobin at early lesion development.",
        "Rotate crops and bury infected residue.",
        "Plant hybrids with Ht resistance genes.",
    ),
    "Corn_(maize)___healthy": (
        "Side-dress nitrogen according to growth stage.",
        "Irrigate during tasselling and silking if rainfall is low.",
        "Keep the field free of weeds that compete for nutrients.",
    ),
    "Grape___Black_rot": (
        "Remove mummified berries and infected canes during dormancy.",
        "Spray mancozeb or myclobutanil from bud break through bloom.",
        "Train vines to keep the canopy open and dry.",
    ),
    "Grape___Esca_(Black_Measles)": (
        "Prune out and destroy symptomatic wood well below visible damage.",
        "Protect large pruning wounds with a wound sealant or fungicide paste.",
        "Prune during dry weather to limit spore infection.",
    ),
    "Grape___Leaf_blight_(Isariopsis_Leaf_Spot)": (
        "Apply a copper-based or mancozeb fungicide after the first symptoms.",
        "Remove and destroy infected leaves from the vineyard floor.",
        "Improve air circulation through shoot thinning.",
    ),
    "Grape___healthy": (
        "Maintain a regular spray and pruning calendar.",
        "Water at the base of the vine rather than overhead.",
        "Check leaves after rain for early spotting.",
    ),
    "Orange___Haunglongbing_(Citrus_greening)": (
        "Remove and destroy infected trees to protect the rest of the grove.",
        "Control Asian citrus psyllid populations with approved insecticides.",
        "Replant only with certified disease-free nursery stock.",
    ),
    "Peach___Bacterial_spot": (
        "Apply copper bactericide during dormancy and oxytetracycline in season.",
        "Avoid overhead irrigation to keep foliage dry.",
        "Plant resistant peach varieties where the disease is common.",
    ),
    "Peach___healthy": (
        "Thin fruit to reduce branch stress.",
        "Fertilise in early spring based on soil tests.",
        "Prune to an open vase shape for good light penetration.",
    ),
    "Pepper,_bell___Bacterial_spot": (
        "Spray copper-based bactericides, covering both leaf surfaces.",
        "Remove and destroy infected plant debris immediately.",
        "Use certified disease-free seed and rotate away from peppers and tomatoes.",
    ),
    "Pepper,_bell___healthy": (
        "Keep a consistent watering schedule to avoid blossom-end rot.",
        "Feed with a balanced fertiliser every few weeks.",
        "Monitor regularly for aphids and leaf spots.",
    ),
    "Potato___Early_blight": (
        "Apply chlorothalonil or mancozeb when the first target spots appear.",
        "Remove infected lower leaves to reduce inoculum.",
        "Rotate potatoes with non-solanaceous crops every 2-3 years.",
    ),
    "Potato___Late_blight": (
        "Apply a systemic fungicide such as metalaxyl immediately.",
        "Destroy all infected plant material; do not compost it.",
        "Kill vines 2-3 weeks before harvest to protect tubers.",
    ),
    "Potato___healthy": (
        "Hill soil around stems to protect developing tubers.",
        "Water evenly, avoiding waterlogged soil.",
        "Scout for blight symptoms during cool, wet weather.",
    ),
    "Raspberry___healthy": (
        "Remove spent floricanes after fruiting.",
        "Mulch to conserve moisture and suppress weeds.",
        "Keep rows narrow to improve airflow.",
    ),
    "Soybean___healthy": (
        "Maintain proper plant spacing for airflow.",
        "Scout for insect defoliation every week.",
        "Rotate with corn or small grains to break disease cycles.",
    ),
    "Squash___Powdery_mildew": (
        "Spray sulfur, neem oil or potassium bicarbonate at first appearance.",
        "Remove heavily infected leaves to slow the spread.",
        "Space plants widely and water at soil level.",
    ),
    "Strawberry___Leaf_scorch": (
        "Remove and destroy infected leaves after harvest.",
        "Apply a captan fungicide during early spring growth.",
        "Renovate beds and avoid overhead watering.",
    ),
    "Strawberry___healthy": (
        "Replace mulch yearly to keep berries off the soil.",
        "Water in the morning so foliage dries quickly.",
        "Renew plantings every three to four years.",
    ),
    "Tomato___Bacterial_spot": (
        "Apply copper-based sprays combined with mancozeb.",
        "Remove infected leaves and avoid working with wet plants.",
        "Use disease-free seed and rotate crops for two years.",
    ),
    "Tomato___Early_blight": (
        "Remove lower infected leaves and dispose of them away from the garden.",
        "Apply chlorothalonil or copper fungicide every 7-10 days.",
        "Mulch around the base to prevent soil splash.",
    ),
    "Tomato___Late_blight": (
        "Remove and destroy infected plants immediately; do not compost them.",
        "Apply a copper-based or chlorothalonil fungicide to protect healthy plants.",
        "Water at the base in the morning and keep foliage dry.",
    ),
    "Tomato___Leaf_Mold": (
        "Lower humidity by increasing ventilation in greenhouses or tunnels.",
        "Remove infected leaves and apply a chlorothalonil fungicide.",
        "Grow leaf mold resistant varieties.",
    ),
    "Tomato___Septoria_leaf_spot": (
        "Pick off spotted leaves as soon as they appear.",
        "Apply chlorothalonil or copper fungicide on a regular schedule.",
        "Rotate tomatoes away from the same bed for three years.",
    ),
    "Tomato___Spider_mites Two-spotted_spider_mite": (
        "Spray the undersides of leaves with water or insecticidal soap.",
        "Apply neem oil or a miticide for heavy infestations.",
        "Keep plants well watered, since drought stress favours mites.",
    ),
    "Tomato___Target_Spot": (
        "Apply azoxystrobin or chlorothalonil at the first lesions.",
        "Remove crop debris after the season ends.",
        "Prune lower branches to improve air movement.",
    ),
    "Tomato___Tomato_Yellow_Leaf_Curl_Virus": (
        "Remove and destroy infected plants to limit spread.",
        "Control whiteflies with yellow sticky traps or approved insecticides.",
        "Use insect netting and resistant varieties for new plantings.",
    ),
    "Tomato___Tomato_mosaic_virus": (
        "Remove infected plants and disinfect tools with a bleach solution.",
        "Wash hands before handling plants, especially after tobacco use.",
        "Plant resistant cultivars and certified seed.",
    ),
    "Tomato___healthy": (
        "Stake or cage plants to keep foliage off the ground.",
        "Water deeply and consistently at the base.",
        "Inspect leaves weekly for spots or curling.",
    ),
}


def normalize_label(label: str) -> str:
    """``"Tomato___Late_blight"`` -> ``"Tomato Late blight"``."""
    return _SEPARATORS.sub(" ", label).strip()


class TreatmentCatalog:
    """Priority-ordered lookup: exact label, separator-normalised label, fallback."""

    def __init__(
        self,
        entries: Mapping[str, Sequence[str]],
        fallback: Sequence[str] = FALLBACK_ADVICE,
    ) -> None:
        if not fallback:
            raise ValueError("Fallback advice must not be empty")
        self._exact: Mapping[str, Tuple[str, ...]] = MappingProxyType(
            {label: tuple(steps) for label, steps in entries.items() if steps}
        )
        normalized: Dict[str, Tuple[str, ...]] = {}
        for label, steps in self._exact.items():
            normalized.setdefault(normalize_label(label), steps)
        self._normalized: Mapping[str, Tuple[str, ...]] = MappingProxyType(normalized)
        self._fallback = tuple(fallback)

    @classmethod
    def default(cls) -> "TreatmentCatalog":
        return cls(DEFAULT_TREATMENTS)

    @classmethod
    def from_json(cls, path: Path) -> "TreatmentCatalog":
        data = json.loads(path.read_text(encoding="utf-8"))
        if not isinstance(data, dict):
            raise ValueError(f"Treatment file {path} must contain a JSON object")
        entries = {str(label): [str(step) for step in steps] for label, steps in data.items()}
        return cls(entries)

    @property
    def fallback(self) -> Tuple[str, ...]:
        return self._fallback

    def __contains__(self, label: object) -> bool:
        return label in self._exact

    def __len__(self) -> int:
        return len(self._exact)

    def lookup(self, label: str) -> List[str]:
        steps = self._exact.get(label)
        if steps is None:
            steps = self._normalized.get(normalize_label(label), self._fallback)
        return list(steps)
