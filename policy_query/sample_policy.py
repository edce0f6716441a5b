"""
Bundled policy text used when an uploaded document yields no readable text
"""

SAMPLE_POLICY_TEXT = """
SECTION B) DEFINITIONS - STANDARD DEFINITIONS

1. Accident: An Accident means sudden, unforeseen and involuntary event caused by external, visible and violent means.

2. Any one Illness: Any one Illness means continuous Period of Illness and it includes relapse within 45 days from the date of last consultation with the Hospital/Nursing Home where treatment was taken.

3. AYUSH Hospital: An AYUSH Hospital is a healthcare facility wherein medical/surgical/para-surgical treatment procedures and interventions are carried out by AYUSH Medical Practitioner(s) comprising of any of the following:
   a. Central or State Government AYUSH Hospital; or
   b. Teaching Hospital attached to AYUSH College recognized by the Central Government/Central Council of Indian Medicine/Central Council for Homeopathy; or
   c. AYUSH Hospital, standalone or co-located with Inpatient healthcare facility of any recognized system of medicine, registered with the local authorities, wherever applicable, and is under the supervision of a qualified registered AYUSH Medical Practitioner and must comply with all the following criterion:
      i. Having at least 5 Inpatient beds;
      ii. Having qualified AYUSH Medical Practitioner in charge round the clock;
      iii. Having dedicated AYUSH therapy sections as required and/or has equipped operation theatre where surgical procedures are to be carried out;
      iv. Maintaining daily records of the patients and making them accessible to the Insurance Company's authorized representative.

17. Hospital: A Hospital means any institution established for Inpatient care and Day Care Treatment of Illness and/or injuries and which has been registered as a Hospital with the local authorities under the Clinical Establishments (Registration and Regulation) Act, 2010 OR under the enactments specified under the Schedule of Section 56(1) of the said Act OR complies with all minimum criteria as under:
   i. has qualified nursing staff under its employment round the clock;
   ii. has at least 10 Inpatient beds in towns having a population of less than 10,00,000 and at least 15 Inpatient beds in all other places;
   iii. has qualified Medical Practitioner(s) in charge round the clock;
   iv. has a fully equipped operation theatre of its own where surgical procedures are carried out;
   v. maintains daily records of patients and makes these accessible to the Insurance Company's authorized personnel.

18. Hospitalization: Hospitalization means admission in a Hospital for a minimum period of 24 consecutive In-patient Care hours except for specified procedures/treatments, where such admission could be for a period of less than 24 consecutive hours.

19. Illness: Illness means a sickness or a disease or pathological condition leading to the impairment of normal physiological function and requires medical treatment.

20. Injury: Injury means Accidental physical bodily harm excluding Illness or disease solely and directly caused by external, violent, visible and evident means which is verified and certified by a Medical Practitioner.

21. Inpatient Care: Inpatient care means treatment for which the Insured has to stay in a Hospital for more than 24 hours for a covered event.

COVERAGE TERMS:
- Coverage available for individuals aged 18-65 years at policy inception
- Orthopedic surgeries including knee, hip, and joint procedures are covered under surgical benefits
- 30-day waiting period applies to non-emergency surgical procedures from policy commencement date
- Coverage valid across all major cities and towns in India including Mumbai, Delhi, Pune, Bangalore, Chennai, Kolkata
- Maximum Sum Insured varies by plan: ₹2,00,000 to ₹10,00,000 per policy year
- Standard deductible ranges from ₹5,000 to ₹25,000 based on Sum Insured opted
- Pre-existing conditions covered after 48 months of continuous coverage without break
- Maternity benefits available after 9 months of policy inception (if opted)
- Emergency procedures and accidents have no waiting period restriction
- Day care procedures covered if listed in policy schedule
- Cashless facility available at network hospitals
- Geographic coverage extends throughout India
- Policy must be active for minimum 3 months for elective surgeries
- Age-based premium loading applies above 45 years
- Co-payment may apply based on policy variant and Sum Insured
"""
